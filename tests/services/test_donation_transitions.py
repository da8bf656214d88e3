"""Unit Tests: donation step graph: pure, no I/O."""

import pytest

from core.errors import InvalidTransitionError
from services.donation_capture import TRANSITIONS, DonationEvent, DonationStep, transition


def test_happy_path_with_tip():
    step = DonationStep.BANK_DETAILS
    for event in (DonationEvent.CONFIRM_TRANSFER, DonationEvent.PROOF_ACCEPTED,
                  DonationEvent.ACCEPT_TIP, DonationEvent.TIP_SETTLED):
        step = transition(step, event)
    assert step == DonationStep.SUCCESS


def test_decline_tip_skips_payment():
    assert transition(DonationStep.TIP_PROMPT, DonationEvent.DECLINE_TIP) == DonationStep.SUCCESS


def test_back_navigation():
    assert transition(DonationStep.PROOF_UPLOAD, DonationEvent.BACK) == DonationStep.BANK_DETAILS
    assert transition(DonationStep.TIP_AMOUNT, DonationEvent.BACK) == DonationStep.TIP_PROMPT


def test_accepts_raw_values():
    assert transition("bank_details", "confirm_transfer") == DonationStep.PROOF_UPLOAD


@pytest.mark.parametrize("event", list(DonationEvent))
def test_success_is_terminal(event):
    with pytest.raises(InvalidTransitionError):
        transition(DonationStep.SUCCESS, event)


def test_proof_cannot_be_accepted_twice():
    """Once on the tip prompt, the proof step is behind us."""
    with pytest.raises(InvalidTransitionError):
        transition(DonationStep.TIP_PROMPT, DonationEvent.PROOF_ACCEPTED)


def test_tip_cannot_settle_without_being_accepted():
    with pytest.raises(InvalidTransitionError):
        transition(DonationStep.TIP_PROMPT, DonationEvent.TIP_SETTLED)


def test_every_step_but_success_has_a_way_forward():
    sources = {step for step, _ in TRANSITIONS}
    assert sources == set(DonationStep) - {DonationStep.SUCCESS}
