from __future__ import annotations

import pytest

from confirmation.gate import ConfirmationGate, ConfirmationRecognizer, GateState
from registry.catalog import build_default_registry
from shared.models import ToolCall


def _gate() -> ConfirmationGate:
    return ConfirmationGate(build_default_registry())


def test_read_only_batch_bypasses_gate():
    gate = _gate()
    calls = [ToolCall(name="showJurusan"), ToolCall(name="showProdi")]
    assert gate.intercept("s1", calls) is None
    assert gate.state("s1") is GateState.IDLE


def test_mutating_call_is_held_with_prompt():
    gate = _gate()
    envelope = gate.intercept("s1", [ToolCall(name="deleteJurusan", args={"name": "Informatics"})])

    assert envelope is not None
    assert envelope.success is True
    assert envelope.needs_confirmation is True
    assert "Informatics" in envelope.confirmation_prompt
    assert "Delete Jurusan" in envelope.confirmation_prompt
    assert envelope.pending_actions.actions == [ToolCall(name="deleteJurusan", args={"name": "Informatics"})]
    assert gate.state("s1") is GateState.AWAITING_CONFIRMATION


def test_mixed_batch_is_held_whole_in_original_order():
    gate = _gate()
    calls = [
        ToolCall(name="showUsers", args={"role": "dosen"}),
        ToolCall(name="deleteUserByNim", args={"nim": "12345"}),
    ]
    envelope = gate.intercept("s1", calls)
    assert [call.name for call in envelope.pending_actions.actions] == ["showUsers", "deleteUserByNim"]
    assert "(read-only)" in envelope.confirmation_prompt
    assert "12345" in envelope.confirmation_prompt


def test_prompt_summarizes_nested_lists():
    gate = _gate()
    envelope = gate.intercept(
        "s1",
        [ToolCall(name="addJurusan", args={"jurusan_data": [{"name": "Teknik Mesin", "kode_jurusan": "TM"}]})],
    )
    assert "Teknik Mesin" in envelope.confirmation_prompt


def test_resolve_pops_exactly_once():
    gate = _gate()
    envelope = gate.intercept("s1", [ToolCall(name="deleteJurusan", args={"name": "Informatics"})])

    pending = gate.resolve("s1", approved=True)
    assert pending is not None
    assert pending.id == envelope.pending_actions.id
    assert gate.state("s1") is GateState.IDLE
    assert gate.resolve("s1", approved=True) is None


def test_rejection_discards_pending_set():
    gate = _gate()
    gate.intercept("s1", [ToolCall(name="deleteProdi", args={"name": "Teknik Listrik"})])
    assert gate.resolve("s1", approved=False) is not None
    assert gate.pending_for("s1") is None


def test_sessions_are_isolated():
    gate = _gate()
    gate.intercept("a", [ToolCall(name="deleteJurusan", args={"name": "X"})])
    assert gate.state("a") is GateState.AWAITING_CONFIRMATION
    assert gate.state("b") is GateState.IDLE
    assert gate.resolve("b", approved=True) is None


@pytest.mark.parametrize(
    "text,expected",
    [
        ("yes", True),
        ("Yes!", True),
        ("  OK  ", True),
        ("ya", True),
        ("iya, lanjutkan", True),
        ("go ahead", True),
        ("sim", True),
        ("no", False),
        ("Tidak.", False),
        ("batal", False),
        ("não", False),
        ("yes but no", False),
        ("maybe later", None),
        ("", None),
    ],
)
def test_recognizer_interpret(text, expected):
    assert ConfirmationRecognizer().interpret(text) is expected


def test_recognizer_treats_unclear_reply_as_rejection():
    recognizer = ConfirmationRecognizer()
    assert recognizer.is_affirmative("what does that mean?") is False
    assert recognizer.is_affirmative("yes") is True


def test_recognizer_custom_vocabulary():
    recognizer = ConfirmationRecognizer(yes_words=["gas"], no_words=["skip"])
    assert recognizer.interpret("gas") is True
    assert recognizer.interpret("skip") is False
    assert recognizer.interpret("yes") is None
