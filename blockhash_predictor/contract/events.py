"""
Decoding of contract event logs from a transaction receipt.

A receipt may carry logs from other contracts or with other signatures, and
individual logs can be malformed. Those entries are skipped, they never fail
the transaction result.
"""
from typing import Any, Dict, Iterable, List, Optional

import bittensor as bt
from eth_abi import decode
from eth_abi.exceptions import DecodingError
from eth_utils import keccak, to_bytes, to_checksum_address
from pydantic import BaseModel, Field


class MismatchedEventError(ValueError):
    """The log was not emitted by the event being decoded."""


class DecodedEvent(BaseModel):
    name: str = Field(..., description="Event name")
    args: Dict[str, Any] = Field(..., description="Decoded event arguments")
    log_index: Optional[int] = Field(None, description="Position of the log in the block")
    address: Optional[str] = Field(None, description="Contract that emitted the log")


def event_signature(event_abi: dict) -> str:
    types = ",".join(i["type"] for i in event_abi["inputs"])
    return f"{event_abi['name']}({types})"


def event_topic(event_abi: dict) -> bytes:
    return keccak(text=event_signature(event_abi))


def _to_bytes(value) -> bytes:
    if isinstance(value, str):
        return to_bytes(hexstr=value)
    return bytes(value)


def _render(type_: str, value):
    if type_.startswith("bytes") and isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    return value


def decode_log(event_abi: dict, log) -> DecodedEvent:
    """Decodes one log entry against an event ABI.

    Raises:
        MismatchedEventError:
            The log belongs to another event
        DecodingError:
            The topics or data do not decode as the event's types
    """
    topics = [_to_bytes(t) for t in log.get("topics", [])]
    if not topics or topics[0] != event_topic(event_abi):
        raise MismatchedEventError(f"Log is not a {event_abi['name']} event")

    indexed = [i for i in event_abi["inputs"] if i.get("indexed")]
    unindexed = [i for i in event_abi["inputs"] if not i.get("indexed")]
    if len(topics) - 1 != len(indexed):
        raise MismatchedEventError(
            f"Expected {len(indexed)} indexed topics for {event_abi['name']}, got {len(topics) - 1}"
        )

    args = {}
    for param, topic in zip(indexed, topics[1:]):
        args[param["name"]] = _render(param["type"], decode([param["type"]], topic)[0])

    values = decode([p["type"] for p in unindexed], _to_bytes(log.get("data", b"")))
    for param, value in zip(unindexed, values):
        args[param["name"]] = _render(param["type"], value)

    address = log.get("address")
    return DecodedEvent(
        name=event_abi["name"],
        args=args,
        log_index=log.get("logIndex"),
        address=to_checksum_address(address) if address else None,
    )


def scan_logs(event_abi: dict, logs: Iterable, address: Optional[str] = None) -> List[DecodedEvent]:
    """
    Decodes every log of the receipt that is an instance of the event,
    optionally restricted to one emitting contract.
    """
    events = []
    for log in logs:
        log_address = log.get("address")
        if address and log_address and log_address.lower() != address.lower():
            continue
        try:
            events.append(decode_log(event_abi, log))
        except MismatchedEventError:
            continue
        except (DecodingError, ValueError, TypeError) as e:
            bt.logging.debug(f"Skipping undecodable log {log.get('logIndex')}: {e}")
            continue
    return events
