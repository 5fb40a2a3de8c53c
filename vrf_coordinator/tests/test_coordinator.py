import pytest

from vrf_coordinator.abi import encode_error_string
from vrf_coordinator.constants import (
    ERROR_STRING_SELECTOR,
    MAX_REASON_LEN,
    REASON_EMPTY_ERROR_STRING,
    REASON_LOW_LEVEL,
    REASON_LOW_LEVEL_WITH_DATA,
    REASON_SUCCESS,
    ZERO_ADDRESS,
)
from vrf_coordinator.context import CallContext
from vrf_coordinator.coordinator import Coordinator
from vrf_coordinator.errors import (
    CommitmentMismatch,
    FundingFailed,
    InsufficientGasLimit,
    InsufficientGasPayment,
    InsufficientOracleBalance,
    InvalidGasPriceHistoryWindow,
    InvalidNumWords,
    InvalidProof,
    InvalidPublicKey,
    NotOracle,
    OracleAlreadyRegistered,
    RequestNotFound,
    Revert,
    TransferFailed,
    WithdrawFailed,
    ZeroAddress,
)
from vrf_coordinator.events import (
    CONSUMER_CALLBACK_FAILED,
    DEBUG_FULFILLMENT,
    FULFILLMENT_GAS_REFUNDED,
    FUNDS_RECEIVED,
    ORACLE_REGISTERED,
    ORACLE_WITHDRAWAL,
    RANDOM_WORDS_FULFILLED,
    RANDOM_WORDS_REQUESTED,
)
from vrf_coordinator.verifier import Proof, PseudoRandomVerifier

from .conftest import BUDGET, CONSUMER, ETHER, ORACLE, REFUNDEE, USER, RejectingAccount

GOOD_PROOF = Proof(
    public_key=(1, 2),
    proof=(3, 4, 5, 6),
    u_point=(7, 8),
    v_components=(9, 10, 11, 12),
    proof_ctr=0,
)


def stats_consistent(coord: Coordinator) -> bool:
    s = coord.get_fulfillment_stats()
    return s.total == s.pending + s.successes + s.failures


def fulfill_with_proof(coord, ctx, rid, proof=GOOD_PROOF, **overrides):
    req = coord.get_request(rid)
    args = dict(
        consumer=req.consumer,
        callback_budget=req.callback_budget,
        num_words=req.num_words,
        refundee=req.refundee,
        gas_price_paid=req.gas_price_paid,
    )
    args.update(overrides)
    return coord.fulfill_random_words(
        ctx,
        rid,
        args["consumer"],
        args["callback_budget"],
        args["num_words"],
        args["refundee"],
        args["gas_price_paid"],
        proof,
    )


# ---------------------------------------------------------------------------
# Construction / oracles
# ---------------------------------------------------------------------------


def test_signer_is_first_oracle(coord):
    assert coord.get_signer_address() == ORACLE
    assert coord.is_oracle(ORACLE)
    assert not coord.is_oracle(USER)
    assert coord.logs(ORACLE_REGISTERED)[0]["oracle"] == ORACLE


def test_register_oracle_rules(coord):
    coord.register_oracle(USER)
    assert coord.is_oracle(USER)
    with pytest.raises(OracleAlreadyRegistered):
        coord.register_oracle(USER)
    with pytest.raises(ZeroAddress):
        coord.register_oracle(ZERO_ADDRESS)
    assert coord.get_signer_address() == ORACLE


def test_zero_signer_rejected(metrics):
    with pytest.raises(ZeroAddress):
        Coordinator(signer=ZERO_ADDRESS, metrics=metrics)


def test_params_view(coord):
    p = coord.params()
    assert p["coordinator"] == "0x" + "c0" * 20
    assert p["minCallbackGas"] == 5_000
    assert p["maxCallbackGas"] == 6_000_000
    assert p["fulfillmentGasOverhead"] == 300_000
    assert p["refundPercent"] == 90


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


def test_request_records_everything(coord, open_request):
    expected_id = coord.calculate_next_request_id(CONSUMER)
    price = coord.calculate_request_price(BUDGET)
    before = coord.host.treasury.balance_of(CONSUMER)

    rid = open_request(num_words=3)

    assert rid == expected_id
    assert coord.get_nonce(CONSUMER) == 1
    assert coord.is_request_pending(rid)
    assert coord.host.treasury.balance_of(CONSUMER) == before - price
    assert coord.host.treasury.balance_of(coord.address) == price

    req = coord.get_request(rid)
    assert req.consumer == CONSUMER
    assert req.callback_budget == BUDGET
    assert req.num_words == 3
    assert req.refundee == REFUNDEE
    assert req.gas_price_paid == 10**9
    assert req.payment == price
    assert req.requested_at == 1_000
    assert req.fulfilled is False

    ev = coord.events.last(RANDOM_WORDS_REQUESTED)
    assert ev["request_id"] == rid
    assert ev["consumer"] == CONSUMER
    assert ev["origin"] == CONSUMER
    assert ev["nonce"] == 1
    assert ev["callback_gas_limit"] == BUDGET

    s = coord.get_fulfillment_stats()
    assert (s.total, s.pending, s.successes, s.failures) == (1, 1, 0, 0)
    assert s.total_words_requested == 3
    assert coord.get_request_result(rid).as_tuple() == (False, False)


def test_request_ids_advance_per_consumer(coord, open_request):
    a = open_request()
    b = open_request()
    c = open_request(sender=USER)
    assert len({a, b, c}) == 3
    assert coord.get_nonce(CONSUMER) == 2
    assert coord.get_nonce(USER) == 1


def test_underpayment_rejected_atomically(coord):
    price = coord.calculate_request_price(BUDGET)
    before_balance = coord.host.treasury.balance_of(CONSUMER)
    before_events = len(coord.events)
    ctx = CallContext(sender=CONSUMER, value=price - 1)
    with pytest.raises(InsufficientGasPayment) as ei:
        coord.request_random_words(ctx, BUDGET, 1)
    assert ei.value.context == {"paid": price - 1, "required": price}
    assert coord.host.treasury.balance_of(CONSUMER) == before_balance
    assert coord.host.treasury.balance_of(coord.address) == 0
    assert len(coord.events) == before_events
    assert coord.get_nonce(CONSUMER) == 0
    assert coord.get_fulfillment_stats().total == 0
    assert coord.recent_gas_prices() == []


def test_request_validation_order(coord):
    # num_words is checked before the budget, budget before payment
    with pytest.raises(InvalidNumWords):
        coord.request_random_words(CallContext(sender=CONSUMER), 1, 0)
    with pytest.raises(InsufficientGasLimit):
        coord.request_random_words(CallContext(sender=CONSUMER), 1, 1)
    with pytest.raises(InsufficientGasPayment):
        coord.request_random_words(CallContext(sender=CONSUMER), BUDGET, 1)


def test_sender_without_funds_cannot_request(coord):
    poor = bytes.fromhex("44" * 20)
    price = coord.calculate_request_price(BUDGET)
    with pytest.raises(TransferFailed):
        coord.request_random_words(CallContext(sender=poor, value=price), BUDGET, 1)
    assert coord.get_nonce(poor) == 0


def test_gas_price_history(coord, open_request):
    open_request()
    coord.set_unit_price(3 * 10**9)
    open_request()
    assert coord.recent_gas_prices() == [10**9, 3 * 10**9]
    assert coord.average_gas_price() == 2 * 10**9
    coord.set_gas_price_history_window(1)
    assert coord.recent_gas_prices() == [3 * 10**9]


# ---------------------------------------------------------------------------
# Happy path
# ---------------------------------------------------------------------------


def test_mock_fulfilment_delivers_words(coord, open_request, oracle_ctx, deploy_consumer):
    consumer = deploy_consumer(lambda self, c, r, w, m: m.consume(10_000))
    rid = open_request(num_words=3)

    assert coord.fulfill_request_mock(oracle_ctx, rid, [1, 2, 3]) is True

    assert consumer.received == [(rid, [1, 2, 3])]
    ev = coord.events.last(RANDOM_WORDS_FULFILLED)
    assert ev["request_id"] == rid
    assert ev["random_words"] == (1, 2, 3)
    assert ev["oracle"] == ORACLE
    assert ev["success"] is True
    assert coord.events.last(DEBUG_FULFILLMENT)["reason"] == REASON_SUCCESS
    assert not coord.is_request_pending(rid)
    assert coord.get_request(rid).fulfilled is True
    assert coord.get_request_result(rid).as_tuple() == (True, True)
    s = coord.get_fulfillment_stats()
    assert (s.total, s.pending, s.successes, s.failures) == (1, 0, 1, 0)


def test_fulfilment_refund_and_oracle_credit(coord, open_request, oracle_ctx, deploy_consumer):
    deploy_consumer(lambda self, c, r, w, m: m.consume(10_000))
    price = coord.calculate_request_price(BUDGET)
    rid = open_request()

    coord.fulfill_request_mock(oracle_ctx, rid, [1, 2, 3])

    expected_refund = (BUDGET - 10_000) * 10**9 * 90 // 100
    ev = coord.events.last(FULFILLMENT_GAS_REFUNDED)
    assert ev["refundee"] == REFUNDEE
    assert ev["amount"] == expected_refund
    assert ev["gas_used"] == 10_000
    assert ev["success"] is True
    assert coord.host.treasury.balance_of(REFUNDEE) == expected_refund
    assert coord.oracle_balance(ORACLE) == price - expected_refund
    assert coord.host.treasury.balance_of(coord.address) == price - expected_refund


def test_refund_uses_price_recorded_at_request(coord, open_request, oracle_ctx):
    rid = open_request()
    coord.set_unit_price(50 * 10**9)
    coord.fulfill_request_mock(oracle_ctx, rid, [1, 2, 3])
    # value-only consumer: nothing metered, whole budget unused
    assert coord.events.last(FULFILLMENT_GAS_REFUNDED)["amount"] == BUDGET * 10**9 * 90 // 100


# ---------------------------------------------------------------------------
# Callback failure classification
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "data,reason",
    [
        (b"", REASON_LOW_LEVEL),
        (ERROR_STRING_SELECTOR, REASON_EMPTY_ERROR_STRING),
        (encode_error_string("boom"), "callback failed: boom"),
        (b"\x01\x02\x03", REASON_LOW_LEVEL_WITH_DATA),
    ],
)
def test_callback_failure_reasons(coord, open_request, oracle_ctx, deploy_consumer, data, reason):
    def body(self, c, r, w, m):
        raise Revert(data)

    deploy_consumer(body)
    rid = open_request()

    assert coord.fulfill_request_mock(oracle_ctx, rid, [1, 2, 3]) is False

    assert coord.events.last(DEBUG_FULFILLMENT)["reason"] == reason
    assert coord.events.last(RANDOM_WORDS_FULFILLED)["success"] is False
    failed = coord.events.last(CONSUMER_CALLBACK_FAILED)
    assert failed["consumer"] == CONSUMER
    assert failed["reason_code"] == (int.from_bytes(data[:4], "big") if len(data) >= 4 else 0)
    assert not coord.is_request_pending(rid)
    assert coord.get_request_result(rid).as_tuple() == (False, True)
    s = coord.get_fulfillment_stats()
    assert (s.pending, s.successes, s.failures) == (0, 0, 1)


def test_long_revert_reason_still_closes_request(coord, open_request, oracle_ctx, deploy_consumer):
    def body(self, c, r, w, m):
        raise Revert(encode_error_string("z" * 10_000))

    deploy_consumer(body)
    rid = open_request()

    assert coord.fulfill_request_mock(oracle_ctx, rid, [1, 2, 3]) is False

    reason = coord.events.last(DEBUG_FULFILLMENT)["reason"]
    assert len(reason) == MAX_REASON_LEN and reason.endswith("...")
    assert not coord.is_request_pending(rid)
    assert coord.get_fulfillment_stats().failures == 1


def test_coordinator_error_with_string_argument_is_a_callback_failure(
    coord, open_request, oracle_ctx, deploy_consumer
):
    def body(self, c, r, w, m):
        self.coordinator.set_gas_price_history_window("8")

    deploy_consumer(body)
    rid = open_request()

    assert coord.fulfill_request_mock(oracle_ctx, rid, [1, 2, 3]) is False

    assert coord.events.last(DEBUG_FULFILLMENT)["reason"] == REASON_LOW_LEVEL_WITH_DATA
    selector = InvalidGasPriceHistoryWindow(window="8").selector
    assert coord.events.last(CONSUMER_CALLBACK_FAILED)["reason_code"] == int.from_bytes(selector, "big")
    assert not coord.is_request_pending(rid)
    assert stats_consistent(coord)


def test_out_of_gas_callback_forfeits_refund(coord, open_request, oracle_ctx, deploy_consumer):
    deploy_consumer(lambda self, c, r, w, m: m.consume(BUDGET + 1))
    price = coord.calculate_request_price(BUDGET)
    rid = open_request()

    assert coord.fulfill_request_mock(oracle_ctx, rid, [1, 2, 3]) is False

    assert coord.events.last(DEBUG_FULFILLMENT)["reason"] == REASON_LOW_LEVEL
    assert coord.events.last(CONSUMER_CALLBACK_FAILED)["remaining_gas"] == 0
    assert coord.events.events(FULFILLMENT_GAS_REFUNDED) == []
    assert coord.oracle_balance(ORACLE) == price


def test_failed_callback_effects_are_discarded(coord, open_request, oracle_ctx, deploy_consumer):
    def body(self, c, r, w, m):
        self.host.treasury.transfer(CONSUMER, USER, 1)
        self.host.events.emit("Touched", {"n": 1})
        raise Revert(b"")

    deploy_consumer(body)
    rid = open_request()
    before = coord.host.treasury.balance_of(CONSUMER)
    coord.fulfill_request_mock(oracle_ctx, rid, [1, 2, 3])
    assert coord.host.treasury.balance_of(CONSUMER) == before
    assert coord.events.events("Touched") == []


# ---------------------------------------------------------------------------
# Refunds
# ---------------------------------------------------------------------------


def test_tiny_overpayment_is_not_refunded(coord, open_request):
    price = coord.calculate_request_price(BUDGET)
    before = coord.host.treasury.balance_of(CONSUMER)
    rid = open_request(extra=1)
    assert coord.events.events("RequestGasRefunded") == []
    assert coord.host.treasury.balance_of(CONSUMER) == before - price - 1
    assert coord.get_request(rid).payment == price


def test_large_overpayment_refunds_ninety_percent(coord, open_request):
    price = coord.calculate_request_price(BUDGET)
    excess = ETHER
    before = coord.host.treasury.balance_of(CONSUMER)
    rid = open_request(extra=excess)

    ev = coord.events.last("RequestGasRefunded")
    assert ev["request_id"] == rid
    assert ev["recipient"] == CONSUMER
    assert ev["amount"] == excess * 90 // 100
    assert ev["success"] is True
    assert coord.host.treasury.balance_of(CONSUMER) == before - price - excess // 10


def test_no_refundee_means_no_fulfilment_refund(coord, open_request, oracle_ctx):
    price = coord.calculate_request_price(BUDGET)
    rid = open_request(refundee=None)
    assert coord.get_request(rid).refundee == ZERO_ADDRESS
    coord.fulfill_request_mock(oracle_ctx, rid, [1, 2, 3])
    assert coord.events.events(FULFILLMENT_GAS_REFUNDED) == []
    assert coord.oracle_balance(ORACLE) == price


def test_coordinator_as_refundee_means_no_refund(coord, open_request, oracle_ctx):
    rid = open_request(refundee=coord.address)
    coord.fulfill_request_mock(oracle_ctx, rid, [1, 2, 3])
    assert coord.events.events(FULFILLMENT_GAS_REFUNDED) == []


def test_rejecting_refundee_does_not_fail_fulfilment(coord, open_request, oracle_ctx):
    coord.host.deploy(REFUNDEE, RejectingAccount())
    price = coord.calculate_request_price(BUDGET)
    rid = open_request()

    assert coord.fulfill_request_mock(oracle_ctx, rid, [1, 2, 3]) is True

    ev = coord.events.last(FULFILLMENT_GAS_REFUNDED)
    assert ev["success"] is False
    assert coord.host.treasury.balance_of(REFUNDEE) == 0
    assert coord.oracle_balance(ORACLE) == price
    assert not coord.is_request_pending(rid)


# ---------------------------------------------------------------------------
# Proof-based fulfilment
# ---------------------------------------------------------------------------


def test_fulfill_with_proof_delivers_verified_words(coord, open_request, oracle_ctx, deploy_consumer):
    consumer = deploy_consumer()
    rid = open_request(num_words=2)
    seed = coord.ledger.commitment_of(rid)
    expected = PseudoRandomVerifier().verify(GOOD_PROOF, request_id=rid, num_words=2, seed=seed)

    assert fulfill_with_proof(coord, oracle_ctx, rid) is True

    assert consumer.received == [(rid, expected)]
    assert len(expected) == 2
    assert all(0 <= w < 1 << 256 for w in expected)


@pytest.mark.parametrize(
    "override",
    [
        {"consumer": USER},
        {"callback_budget": BUDGET + 1},
        {"num_words": 4},
        {"refundee": USER},
        {"gas_price_paid": 1},
    ],
)
def test_tampered_fulfilment_rejected(coord, open_request, oracle_ctx, override):
    rid = open_request(num_words=3)
    with pytest.raises(CommitmentMismatch):
        fulfill_with_proof(coord, oracle_ctx, rid, **override)
    assert coord.is_request_pending(rid)
    assert coord.get_fulfillment_stats().pending == 1


def test_unknown_request_rejected(coord, oracle_ctx, open_request):
    open_request()
    with pytest.raises(CommitmentMismatch):
        coord.fulfill_random_words(
            oracle_ctx, 12345, CONSUMER, BUDGET, 3, REFUNDEE, 10**9, GOOD_PROOF
        )
    with pytest.raises(RequestNotFound):
        coord.fulfill_request_mock(oracle_ctx, 12345, [1])


def test_double_fulfilment_rejected(coord, open_request, oracle_ctx):
    rid = open_request()
    fulfill_with_proof(coord, oracle_ctx, rid)
    with pytest.raises(CommitmentMismatch):
        fulfill_with_proof(coord, oracle_ctx, rid)
    with pytest.raises(CommitmentMismatch):
        coord.fulfill_request_mock(oracle_ctx, rid, [1, 2, 3])
    assert coord.get_fulfillment_stats().successes == 1


def test_non_oracle_cannot_fulfil(coord, open_request):
    rid = open_request()
    stranger = CallContext(sender=USER)
    with pytest.raises(NotOracle):
        fulfill_with_proof(coord, stranger, rid)
    with pytest.raises(NotOracle):
        coord.fulfill_request_mock(stranger, rid, [1, 2, 3])
    with pytest.raises(NotOracle):
        coord.fulfill_request_mock_with_random_words(stranger, rid)
    assert coord.is_request_pending(rid)


@pytest.mark.parametrize(
    "proof,exc",
    [
        (Proof((0, 0), (3, 4, 5, 6), (7, 8), (9, 10, 11, 12)), InvalidPublicKey),
        (Proof((1,), (3, 4, 5, 6), (7, 8), (9, 10, 11, 12)), InvalidPublicKey),
        (Proof((1, 2), (3, 4, 5), (7, 8), (9, 10, 11, 12)), InvalidProof),
        (Proof((1, 2), (3, 4, 5, 6), (7, 8, 9), (9, 10, 11, 12)), InvalidProof),
        (Proof((1, 2), (3, 4, 5, 6), (7, 8), (9, 10, 11, 12), proof_ctr=-1), InvalidProof),
    ],
)
def test_bad_proofs_rejected(coord, open_request, oracle_ctx, proof, exc):
    rid = open_request()
    with pytest.raises(exc):
        fulfill_with_proof(coord, oracle_ctx, rid, proof=proof)
    assert coord.is_request_pending(rid)


def test_configured_public_key_enforced(metrics):
    c = Coordinator(signer=ORACLE, verifier=PseudoRandomVerifier(public_key=(5, 6)), metrics=metrics)
    c.host.treasury.credit(CONSUMER, ETHER)
    price = c.calculate_request_price(BUDGET)
    rid = c.request_random_words(CallContext(sender=CONSUMER, value=price), BUDGET, 1)
    with pytest.raises(InvalidPublicKey):
        fulfill_with_proof(c, CallContext(sender=ORACLE), rid)


def test_verifier_word_count_must_match(metrics):
    class ShortVerifier:
        def verify(self, proof, *, request_id, num_words, seed):
            return [1] * (num_words - 1)

    c = Coordinator(signer=ORACLE, verifier=ShortVerifier(), metrics=metrics)
    c.host.treasury.credit(CONSUMER, ETHER)
    price = c.calculate_request_price(BUDGET)
    rid = c.request_random_words(CallContext(sender=CONSUMER, value=price), BUDGET, 2)
    with pytest.raises(InvalidNumWords):
        fulfill_with_proof(c, CallContext(sender=ORACLE), rid)
    assert c.is_request_pending(rid)


# ---------------------------------------------------------------------------
# Mock fulfilment paths
# ---------------------------------------------------------------------------


def test_mock_word_count_must_match(coord, open_request, oracle_ctx):
    rid = open_request(num_words=3)
    with pytest.raises(InvalidNumWords) as ei:
        coord.fulfill_request_mock(oracle_ctx, rid, [1, 2])
    assert ei.value.context == {"given": 2, "expected": 3}
    assert coord.is_request_pending(rid)


def test_mock_with_random_words(coord, open_request, oracle_ctx, deploy_consumer):
    consumer = deploy_consumer()
    rid = open_request(num_words=4)
    assert coord.fulfill_request_mock_with_random_words(oracle_ctx, rid) is True
    ((got_id, words),) = consumer.received
    assert got_id == rid
    assert len(words) == 4
    assert len(set(words)) == 4
    assert coord.events.last(RANDOM_WORDS_FULFILLED)["random_words"] == tuple(words)


# ---------------------------------------------------------------------------
# Reentrancy
# ---------------------------------------------------------------------------


def test_reentrant_fulfilment_cannot_close_twice(coord, open_request, oracle_ctx, deploy_consumer):
    def body(self, c, r, w, m):
        # The consumer is also an oracle, so only the commitment stops it.
        self.coordinator.fulfill_request_mock(CallContext(sender=self.address), r, list(w))

    consumer = deploy_consumer(body)
    coord.register_oracle(consumer.address)
    rid = open_request()

    assert coord.fulfill_request_mock(oracle_ctx, rid, [1, 2, 3]) is False

    assert coord.events.last(DEBUG_FULFILLMENT)["reason"] == REASON_LOW_LEVEL_WITH_DATA
    selector = CommitmentMismatch(request_id=rid).selector
    assert coord.events.last(CONSUMER_CALLBACK_FAILED)["reason_code"] == int.from_bytes(selector, "big")
    assert len(coord.logs(RANDOM_WORDS_FULFILLED)) == 1
    s = coord.get_fulfillment_stats()
    assert (s.total, s.pending, s.successes, s.failures) == (1, 0, 0, 1)
    assert coord.oracle_balance(consumer.address) == 0


# ---------------------------------------------------------------------------
# Statistics invariant
# ---------------------------------------------------------------------------


def test_stats_invariant_through_mixed_lifecycle(coord, open_request, oracle_ctx, deploy_consumer):
    def body(self, c, r, w, m):
        if w[0] % 2:
            raise Revert(b"")

    deploy_consumer(body)
    ids = [open_request(num_words=1) for _ in range(6)]
    assert stats_consistent(coord)
    for i, rid in enumerate(ids[:5]):
        coord.fulfill_request_mock(oracle_ctx, rid, [i])
        assert stats_consistent(coord)
    s = coord.get_fulfillment_stats()
    assert (s.total, s.pending, s.successes, s.failures) == (6, 1, 3, 2)
    assert s.total_words_requested == 6


# ---------------------------------------------------------------------------
# Oracle withdrawals and funding
# ---------------------------------------------------------------------------


def test_oracle_withdraw(coord, open_request, oracle_ctx):
    rid = open_request(refundee=None)
    coord.fulfill_request_mock(oracle_ctx, rid, [1, 2, 3])
    earned = coord.oracle_balance(ORACLE)
    assert earned > 0

    with pytest.raises(InsufficientOracleBalance):
        coord.withdraw(oracle_ctx, earned + 1)

    coord.withdraw(oracle_ctx, earned)
    assert coord.oracle_balance(ORACLE) == 0
    assert coord.host.treasury.balance_of(ORACLE) == earned
    ev = coord.events.last(ORACLE_WITHDRAWAL)
    assert ev["oracle"] == ORACLE and ev["amount"] == earned


def test_rejected_withdrawal_restores_balance(coord, open_request):
    picky = bytes.fromhex("55" * 20)
    coord.host.deploy(picky, RejectingAccount())
    coord.register_oracle(picky)
    picky_ctx = CallContext(sender=picky)
    rid = open_request(refundee=None)
    coord.fulfill_request_mock(picky_ctx, rid, [1, 2, 3])
    earned = coord.oracle_balance(picky)

    with pytest.raises(WithdrawFailed):
        coord.withdraw(picky_ctx, earned)
    assert coord.oracle_balance(picky) == earned
    assert coord.events.events(ORACLE_WITHDRAWAL) == []


def test_fund(coord):
    with pytest.raises(FundingFailed):
        coord.fund(CallContext(sender=USER))
    coord.fund(CallContext(sender=USER, value=5))
    assert coord.host.treasury.balance_of(coord.address) == 5
    ev = coord.events.last(FUNDS_RECEIVED)
    assert ev["sender"] == USER and ev["amount"] == 5


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------


def test_views_for_unknown_request(coord):
    req = coord.get_request(1)
    assert req.exists is False
    assert req.id == 1
    assert req.consumer == ZERO_ADDRESS
    assert (req.callback_budget, req.num_words, req.payment) == (0, 0, 0)
    assert coord.get_request_result(1).as_tuple() == (False, False)
    assert coord.is_request_pending(1) is False


def test_decode_error_string_helper():
    payload = encode_error_string("hello")
    assert Coordinator.decode_error_string(payload[4:]) == "hello"


def test_salted_mock_words_depend_on_timestamp(coord, open_request, deploy_consumer):
    consumer = deploy_consumer()
    a = open_request(num_words=1)
    b = open_request(num_words=1)
    coord.fulfill_request_mock_with_random_words(CallContext(sender=ORACLE, timestamp=1), a)
    coord.fulfill_request_mock_with_random_words(CallContext(sender=ORACLE, timestamp=2), b)
    (_, wa), (_, wb) = consumer.received
    assert wa != wb
    assert 0 <= wa[0] < 1 << 256
