# @name Child Pays For Parent (CPFP) Scenario
# @description A low-fee parent transaction is followed by a child that spends its
# unconfirmed output with a high fee, so miners include both in the next block.
# @version 1.0.0

parent_wallet = params.get("parentWalletName", "cpfp_parent")
miner_wallet = params.get("minerWalletName", "cpfp_miner")
receiver_wallet = params.get("receiverWalletName", "cpfp_receiver")
parent_fee_rate = float(params.get("parentFeeRate", 1))
child_fee_rate = float(params.get("childFeeRate", 50))
confirmation_blocks = int(params.get("confirmationBlocks", 1))
total_steps = 5


def sign_and_broadcast(txid):
    signed = backend.sign_transaction(txid, wallet=parent_wallet)
    if not signed["complete"]:
        raise RuntimeError(f"Failed to finalize transaction {txid}")
    return backend.broadcast_transaction(txid=txid)


progress(1, total_steps, "Creating wallets")
for name in (parent_wallet, miner_wallet, receiver_wallet):
    backend.create_wallet(name, {"disablePrivateKeys": False})

# One mature coinbase in the parent wallet; everything else goes to the miner.
progress(2, total_steps, "Funding the parent wallet")
backend.mine_blocks(1, to_wallet=parent_wallet)
backend.mine_blocks(100, to_wallet=miner_wallet)
balance = backend.get_balance(parent_wallet)
log.info("Parent wallet balance: %s BTC", balance)
parent_amount = round(balance / 2, 8)
child_amount = round(parent_amount / 2, 8)

progress(3, total_steps, f"Broadcasting parent at {parent_fee_rate} sat/vB")
own_address = backend.get_new_address(parent_wallet)
parent = backend.create_transaction(
    parent_wallet, [{own_address: parent_amount}], fee_rate=parent_fee_rate
)
parent_txid = sign_and_broadcast(parent["txid"])
log.info("Broadcast parent transaction: %s", parent_txid)

# The parent's outputs are now the wallet's only coins, so the child must spend one of them.
progress(4, total_steps, f"Broadcasting child at {child_fee_rate} sat/vB")
receiver_address = backend.get_new_address(receiver_wallet)
child = backend.create_transaction(
    parent_wallet, [{receiver_address: child_amount}], fee_rate=child_fee_rate
)
child_txid = sign_and_broadcast(child["txid"])
log.info("Broadcast child transaction: %s", child_txid)

progress(5, total_steps, f"Mining {confirmation_blocks} block(s) to confirm both")
blocks = backend.mine_blocks(confirmation_blocks, to_wallet=miner_wallet)
receiver_balance = backend.get_balance(receiver_wallet)
log.info("Receiver wallet final balance: %s BTC", receiver_balance)

result = {
    "success": True,
    "parentTxid": parent_txid,
    "childTxid": child_txid,
    "parentFee": parent.get("fee"),
    "childFee": child.get("fee"),
    "confirmedIn": blocks,
}
