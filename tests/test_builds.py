import pytest

from cpworker.core.builds import TRAVIS_STATES, JobDescriptor, StateTable


@pytest.mark.parametrize("state", ["created", "received", "started", "passed"])
def test_success_compatible_states(state: str):
    assert TRAVIS_STATES.is_success(state) is True
    assert TRAVIS_STATES.is_failure(state) is False


@pytest.mark.parametrize("state", ["failed", "errored", "canceled"])
def test_failure_states_are_terminal(state: str):
    assert TRAVIS_STATES.is_failure(state) is True
    assert TRAVIS_STATES.is_terminal(state) is True


def test_only_passed_is_terminal_among_success_states():
    terminal = {s for s in TRAVIS_STATES.success if TRAVIS_STATES.is_terminal(s)}

    assert terminal == {"passed"}


def test_unknown_state_is_failure_but_not_terminal():
    assert TRAVIS_STATES.is_failure("booting") is True
    assert TRAVIS_STATES.is_terminal("booting") is False


def test_state_table_rejects_non_terminal_failure_state():
    with pytest.raises(ValueError, match="terminal"):
        StateTable(
            success=frozenset({"passed"}),
            failure=frozenset({"failed"}),
            terminal=frozenset({"passed"}),
        )


def test_state_table_is_immutable():
    with pytest.raises(AttributeError):
        TRAVIS_STATES.success = frozenset()  # type: ignore[misc]


def test_descriptor_resume_and_missing_fields():
    new = JobDescriptor("job", "", "main", "acme", "", "tok")
    resumed = JobDescriptor("job", "123", "main", "acme", "app", "tok")

    assert new.is_resume is False
    assert new.missing_fields() == ["ProjectName"]
    assert resumed.is_resume is True
    assert resumed.missing_fields() == []
