import bittensor as bt


class LocalAccountSigner:
    """
    Signs transactions with a local eth_account key and broadcasts them raw.
    """

    def __init__(self, w3, account):
        self.w3 = w3
        self.account = account

    @property
    def address(self) -> str:
        return self.account.address

    async def send_transaction(self, tx: dict):
        """Fills nonce and chain id, signs the transaction and sends it.

        Arguments:
            tx:
                Transaction dict as produced by build_transaction

        Returns:
            tx_hash:
                Hash of the broadcast transaction
        """
        tx = dict(tx)
        tx.setdefault("from", self.account.address)
        if "nonce" not in tx:
            tx["nonce"] = await self.w3.eth.get_transaction_count(self.account.address, "pending")
        if "chainId" not in tx:
            tx["chainId"] = await self.w3.eth.chain_id

        signed = self.account.sign_transaction(tx)
        bt.logging.trace(f"Signed transaction nonce={tx['nonce']} chainId={tx['chainId']}")
        return await self.w3.eth.send_raw_transaction(signed.raw_transaction)
