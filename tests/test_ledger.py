"""
Accrual and settlement tests.

Covers the accumulator arithmetic, checkpoint synchronization, dust bounds
and the retroactive weight rule.
"""
import random

import pytest

from payvault.protocol.config.params import SCALE
from payvault.protocol.types.common import InvalidState, TransferFailure, ValidationError
from payvault.vault.core.journal import Journal
from payvault.vault.core.ledger import AccrualLedger, CheckpointStore


# ═══════════════════════════════════════════════════════════════════
# COMPONENT TESTS
# ═══════════════════════════════════════════════════════════════════

def test_compute_delta_requires_weight():
    with pytest.raises(InvalidState, match="total weight is zero"):
        AccrualLedger.compute_delta(100, 0)


def test_compute_delta_truncates():
    delta, remainder = AccrualLedger.compute_delta(10, 3)
    assert delta == 10 * SCALE // 3
    assert remainder == 1
    assert delta * 3 + remainder == 10 * SCALE


def test_settle_syncs_checkpoint_and_is_idempotent():
    store = CheckpointStore()
    assert store.settle("a", 100, 5 * SCALE) == 500
    assert store.checkpoint_of("a") == 5 * SCALE
    assert store.settle("a", 100, 5 * SCALE) == 0
    assert store.checkpoint_of("a") == 5 * SCALE


def test_settle_rollback_restores_checkpoint():
    store = CheckpointStore()
    store.settle("a", 1, SCALE)
    journal = Journal()
    store.settle("a", 1, 3 * SCALE, journal)
    store.settle("b", 1, 3 * SCALE, journal)

    journal.rollback()
    assert store.checkpoint_of("a") == SCALE
    assert "b" not in store.checkpoints()


def test_settle_rejects_checkpoint_ahead_of_accumulator():
    store = CheckpointStore()
    store.load({"a": 2 * SCALE})
    with pytest.raises(InvalidState):
        store.settle("a", 1, SCALE)


# ═══════════════════════════════════════════════════════════════════
# VAULT SCENARIOS
# ═══════════════════════════════════════════════════════════════════

def test_even_split_has_no_dust(make_vault, actors, token):
    vault = make_vault({"alice": 100, "bob": 200, "carol": 300})
    receipt = vault.deposit(actors["depositor"].address, 600)

    assert receipt.delta == SCALE
    assert receipt.remainder == 0
    assert vault.acc_per_weight == SCALE

    paid = [vault.claim(actors[n].address, actors[n].address) for n in ("alice", "bob", "carol")]
    assert paid == [100, 200, 300]
    assert sum(paid) == 600
    assert token.balance_of(actors["vault"].address) == 0
    assert token.balance_of(actors["carol"].address) == 300


def test_uneven_split_leaves_exactly_one_unit_of_dust(make_vault, actors, token):
    vault = make_vault({"alice": 1, "bob": 1, "carol": 1})
    receipt = vault.deposit(actors["depositor"].address, 10)

    assert receipt.delta == 10 * SCALE // 3
    # Scaled remainder is bounded by total_weight - 1
    assert receipt.remainder <= vault.total_weight - 1

    paid = [vault.claim(actors[n].address, actors[n].address) for n in ("alice", "bob", "carol")]
    assert paid == [3, 3, 3]
    assert 10 - sum(paid) == 1
    assert vault.total_deposited - vault.total_claimed == 1
    assert token.balance_of(actors["vault"].address) == 1


def test_weight_change_applies_retroactively(make_vault, actors):
    governor = actors["governor"].address
    alice = actors["alice"].address
    vault = make_vault({"alice": 100, "bob": 100})

    receipt = vault.deposit(actors["depositor"].address, 1000)
    d = receipt.delta
    assert d == 5 * SCALE

    vault.set_weights(governor, [alice], [50])
    assert vault.claimable(alice) == 50 * d // SCALE

    paid = vault.claim(alice, alice)
    assert paid == 250
    assert paid != 100 * d // SCALE


def test_repeat_claim_pays_zero(make_vault, actors, token):
    alice = actors["alice"].address
    vault = make_vault({"alice": 1})
    vault.deposit(actors["depositor"].address, 42)

    assert vault.claim(alice, alice) == 42
    checkpoint = vault.checkpoint_of(alice)
    assert vault.claim(alice, alice) == 0
    assert vault.checkpoint_of(alice) == checkpoint == vault.acc_per_weight
    assert token.balance_of(alice) == 42


def test_claim_pays_to_requested_recipient(make_vault, actors, token):
    vault = make_vault({"alice": 1})
    vault.deposit(actors["depositor"].address, 9)

    vault.claim(actors["alice"].address, actors["sink"].address)
    assert token.balance_of(actors["sink"].address) == 9
    assert token.balance_of(actors["alice"].address) == 0


def test_claim_accumulates_over_deposits(make_vault, actors):
    alice, bob = actors["alice"].address, actors["bob"].address
    vault = make_vault({"alice": 1, "bob": 3})
    depositor = actors["depositor"].address

    vault.deposit(depositor, 400)
    assert vault.claim(alice, alice) == 100
    vault.deposit(depositor, 800)
    vault.deposit(depositor, 4)

    assert vault.claimable(alice) == 201
    assert vault.claimable(bob) == 903
    assert vault.claim(bob, bob) == 903


def test_claimable_matches_claim(make_vault, actors):
    vault = make_vault({"alice": 7, "bob": 13})
    vault.deposit(actors["depositor"].address, 1_000_003)
    alice = actors["alice"].address

    expected = vault.claimable(alice)
    assert vault.claim(alice, alice) == expected
    assert vault.claimable(alice) == 0


def test_checkpoint_equals_accumulator_after_settlement(make_vault, actors):
    vault = make_vault({"alice": 5, "bob": 9})
    depositor = actors["depositor"].address
    for amount in (17, 1, 999, 3):
        vault.deposit(depositor, amount)
        for name in ("alice", "bob"):
            addr = actors[name].address
            vault.claim(addr, addr)
            assert vault.checkpoint_of(addr) == vault.acc_per_weight


def test_unregistered_claim_pays_zero_and_syncs(make_vault, actors):
    vault = make_vault({"alice": 1})
    vault.deposit(actors["depositor"].address, 10)
    bob = actors["bob"].address

    assert vault.claim(bob, bob) == 0
    assert vault.checkpoint_of(bob) == vault.acc_per_weight


def test_deposit_with_zero_total_weight_fails(make_vault, actors, token):
    vault = make_vault({"alice": 0})
    depositor = actors["depositor"].address
    before = token.balance_of(depositor)

    with pytest.raises(InvalidState):
        vault.deposit(depositor, 100)
    assert token.balance_of(depositor) == before
    assert vault.acc_per_weight == 0


@pytest.mark.parametrize("amount", [0, -5, 1.0, True])
def test_deposit_rejects_non_positive_or_non_integer(make_vault, actors, amount):
    vault = make_vault({"alice": 1})
    with pytest.raises(ValidationError):
        vault.deposit(actors["depositor"].address, amount)


def test_deposit_transfer_failure_leaves_ledger_untouched(make_vault, actors):
    vault = make_vault({"alice": 1})
    poor = actors["bob"].address

    with pytest.raises(TransferFailure):
        vault.deposit(poor, 100)
    assert vault.acc_per_weight == 0
    assert vault.total_deposited == 0
    assert vault.sequence == 0


def test_new_participant_accrues_from_zero_checkpoint(make_vault, actors, token):
    governor = actors["governor"].address
    alice, bob = actors["alice"].address, actors["bob"].address
    vault = make_vault({"alice": 100})

    vault.deposit(actors["depositor"].address, 100)
    assert vault.claim(alice, alice) == 100

    # bob's checkpoint starts at 0, so the whole accumulator counts for him
    vault.set_weights(governor, [bob], [100])
    assert vault.claimable(bob) == 100

    # custody is empty: the push fails and the settlement is undone
    with pytest.raises(TransferFailure):
        vault.claim(bob, bob)
    assert vault.checkpoint_of(bob) == 0
    assert vault.total_claimed == 100


def test_conservation_over_random_history(make_vault, actors, token):
    rng = random.Random(1234)
    names = ["alice", "bob", "carol"]
    vault = make_vault({n: rng.randint(1, 1000) for n in names})
    depositor = actors["depositor"].address
    deposited = 0
    paid = 0

    for _ in range(300):
        if rng.random() < 0.5:
            amount = rng.randint(1, 10**6)
            receipt = vault.deposit(depositor, amount)
            deposited += amount
            assert 0 <= receipt.remainder < vault.total_weight
        else:
            addr = actors[rng.choice(names)].address
            paid += vault.claim(addr, addr)
        assert paid <= deposited

    for n in names:
        addr = actors[n].address
        paid += vault.claim(addr, addr)

    assert paid <= deposited
    assert token.balance_of(actors["vault"].address) == deposited - paid
    assert vault.total_claimed == paid
    # at most one unit lost per participant per settlement, plus deposit scaling
    assert deposited - paid <= 300 * len(names)
