import base64

import pytest

from tonpay.models.transactions import TransactionRecord
from tonpay.services.matcher import (
    decode_payload_memo,
    extract_memo,
    find_matching_transaction,
)

MEMO = "42testnet_0123456789abcdef"
AMOUNT = 500_000_000


def test_exact_payment_matches(make_tx):
    tx = make_tx(MEMO, AMOUNT)
    assert find_matching_transaction(AMOUNT, MEMO, [tx]) is tx


def test_overpayment_matches(make_tx):
    tx = make_tx(MEMO, AMOUNT + 1)
    assert find_matching_transaction(AMOUNT, MEMO, [tx]) is tx


def test_underpayment_by_one_nanoton_is_rejected(make_tx):
    tx = make_tx(MEMO, AMOUNT - 1)
    assert find_matching_transaction(AMOUNT, MEMO, [tx]) is None


def test_amounts_compare_as_integers_beyond_float_precision(make_tx):
    expected = 2 ** 64 + 1
    tx = make_tx(MEMO, 2 ** 64)
    assert float(expected) == float(2 ** 64)
    assert find_matching_transaction(expected, MEMO, [tx]) is None


@pytest.mark.parametrize("memo", [
    MEMO.upper(),
    f" {MEMO}",
    f"{MEMO} ",
    MEMO[:-1],
    MEMO + "0",
    "",
])
def test_memo_must_match_exactly(make_tx, memo):
    tx = make_tx(memo, AMOUNT)
    assert find_matching_transaction(AMOUNT, MEMO, [tx]) is None


def test_first_match_in_window_wins(make_tx):
    newest = make_tx(MEMO, AMOUNT + 5)
    older = make_tx(MEMO, AMOUNT)
    assert find_matching_transaction(AMOUNT, MEMO, [newest, older]) is newest


def test_underpaid_entry_does_not_block_later_match(make_tx):
    underpaid = make_tx(MEMO, AMOUNT - 100)
    paid = make_tx(MEMO, AMOUNT)
    assert find_matching_transaction(AMOUNT, MEMO, [underpaid, paid]) is paid


def test_no_match_in_window_returns_none(make_tx):
    window = [make_tx("other_memo", AMOUNT) for _ in range(35)]
    assert find_matching_transaction(AMOUNT, MEMO, window) is None


def test_empty_window_returns_none():
    assert find_matching_transaction(AMOUNT, MEMO, []) is None


@pytest.mark.parametrize("overrides", [
    {"value": "0"},
    {"value": None},
    {"value": "-5"},
    {"value": "1.5"},
    {"sender": None},
    {"sender": ""},
    {"tx_hash": None},
    {"lt": None},
])
def test_incomplete_transactions_are_skipped(make_tx, overrides):
    tx = make_tx(MEMO, **{"value": AMOUNT, **overrides})
    assert find_matching_transaction(0, MEMO, [tx]) is None


def test_base64_payload_is_cleaned_before_comparison(make_tx):
    tx = make_tx(None, AMOUNT, payload_bytes=b"\x00 MEMO123 \x01")
    assert extract_memo(tx) == "MEMO123"
    assert find_matching_transaction(AMOUNT, "MEMO123", [tx]) is tx


def test_text_comment_takes_priority_over_payload(make_tx):
    tx = make_tx("something_else", AMOUNT, payload_bytes=MEMO.encode())
    assert extract_memo(tx) == "something_else"
    assert find_matching_transaction(AMOUNT, MEMO, [tx]) is None


def test_transaction_without_memo_never_matches(make_tx):
    tx = make_tx(None, AMOUNT)
    assert extract_memo(tx) is None
    assert find_matching_transaction(AMOUNT, MEMO, [tx]) is None


@pytest.mark.parametrize("payload", ["not base64!", "%%%%", "TUVNT", "TU=V"])
def test_invalid_base64_yields_no_memo(payload):
    assert decode_payload_memo(payload) is None


@pytest.mark.parametrize("memo", ["MEMO123", "MEMO12", MEMO])
def test_unpadded_payload_decodes(memo):
    payload = base64.b64encode(memo.encode()).decode().rstrip("=")
    assert decode_payload_memo(payload) == memo


def test_line_wrapped_payload_decodes(make_tx):
    encoded = base64.b64encode(b"\x00\x00\x00\x00" + MEMO.encode()).decode()
    payload = f"{encoded[:16]}\n{encoded[16:24]} \r\n\t{encoded[24:]}"

    assert decode_payload_memo(payload) == MEMO
    tx = make_tx(None, AMOUNT)
    tx = tx.model_copy(update={"raw_payload": payload})
    assert find_matching_transaction(AMOUNT, MEMO, [tx]) is tx


def test_payload_with_invalid_utf8_yields_no_memo():
    payload = base64.b64encode(b"\xff\xfe memo").decode()
    assert decode_payload_memo(payload) is None


def test_delete_char_is_stripped():
    payload = base64.b64encode(b"\x7fABC\x7f\n").decode()
    assert decode_payload_memo(payload) == "ABC"


def test_from_tonapi_parses_text_comment():
    tx = TransactionRecord.from_tonapi({
        "hash": "abc",
        "lt": 47000000000001,
        "utime": 1700000000,
        "in_msg": {
            "value": 500000000,
            "source": {"address": "0:sender"},
            "decoded_op_name": "text_comment",
            "decoded_body": {"text": MEMO},
        },
    })
    assert tx.tx_hash == "abc"
    assert tx.lt == "47000000000001"
    assert tx.value == "500000000"
    assert tx.sender == "0:sender"
    assert tx.text_comment == MEMO
    assert find_matching_transaction(AMOUNT, MEMO, [tx]) is tx


def test_from_tonapi_ignores_other_decoded_ops():
    tx = TransactionRecord.from_tonapi({
        "hash": "abc",
        "lt": "1",
        "in_msg": {
            "value": "1",
            "source": {"address": "0:sender"},
            "decoded_op_name": "jetton_notify",
            "decoded_body": {"text": MEMO},
            "message_content": {"data": base64.b64encode(b"payload").decode()},
        },
    })
    assert tx.text_comment is None
    assert extract_memo(tx) == "payload"


def test_from_tonapi_tolerates_missing_in_msg():
    tx = TransactionRecord.from_tonapi({"hash": "abc", "lt": 5, "utime": "soon"})
    assert tx.sender is None
    assert tx.value is None
    assert tx.utime is None
    assert find_matching_transaction(0, MEMO, [tx]) is None
