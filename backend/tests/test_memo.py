import re

from tonpay.services.memo import generate_memo


def test_memo_format():
    memo = generate_memo("42", "testnet")
    assert re.fullmatch(r"42testnet_[0-9a-f]{16}", memo)


def test_memo_without_user_id():
    memo = generate_memo(None, "mainnet")
    assert re.fullmatch(r"mainnet_[0-9a-f]{16}", memo)


def test_memos_differ_between_calls():
    memos = {generate_memo("1", "testnet") for _ in range(1000)}
    assert len(memos) == 1000
