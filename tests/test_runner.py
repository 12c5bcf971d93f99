import threading
import time

import utils.runner as runner
from llm.analyzer import InvalidCredentialError, ReportGenerationError
from utils.runner import (
    AUTH_FAILURE_MESSAGE, GENERIC_FAILURE_MESSAGE, MISSING_CREDENTIAL_MESSAGE,
    MISSING_TARGET_MESSAGE, start_cycle,
)


class RecordingStream:
    def __init__(self, fragments=(), error=None):
        self.fragments = fragments
        self.error = error
        self.calls = []

    def __call__(self, snapshot, on_fragment, api_key, *, now=None):
        self.calls.append((snapshot, api_key))
        for fragment in self.fragments:
            on_fragment(fragment)
        if self.error is not None:
            raise self.error


def test_successful_cycle_accumulates_text(state) -> None:
    stream = RecordingStream(["A", "B", "C"])
    state.set_error("previous")

    assert start_cycle(state, stream=stream, env_api_key="sk-env") is True
    assert state.result_text == "ABC"
    assert state.error is None
    assert state.busy is False
    assert stream.calls[0][1] == "sk-env"


def test_user_key_wins_over_environment(state) -> None:
    stream = RecordingStream(["x"])
    state.set_credential("sk-user")
    start_cycle(state, stream=stream, env_api_key="sk-env")
    assert stream.calls[0][1] == "sk-user"


def test_missing_credential_never_streams(state) -> None:
    stream = RecordingStream(["A"])
    assert start_cycle(state, stream=stream, env_api_key="") is False
    assert stream.calls == []
    assert state.error == MISSING_CREDENTIAL_MESSAGE
    assert state.busy is False


def test_missing_target_checked_first(state) -> None:
    stream = RecordingStream(["A"])
    state.update_target(code="   ")
    assert start_cycle(state, stream=stream, env_api_key="") is False
    assert state.error == MISSING_TARGET_MESSAGE
    assert stream.calls == []


def test_auth_failure_message(state) -> None:
    stream = RecordingStream(["A"], error=RuntimeError("Error code: 401 - invalid x-api-key"))
    assert start_cycle(state, stream=stream, env_api_key="sk-bad") is False
    assert state.error == AUTH_FAILURE_MESSAGE
    assert state.busy is False
    assert state.result_text == "A"


def test_typed_auth_failure_message(state) -> None:
    stream = RecordingStream(error=InvalidCredentialError("rejected"))
    start_cycle(state, stream=stream, env_api_key="sk-bad")
    assert state.error == AUTH_FAILURE_MESSAGE


def test_generic_failure_message(state) -> None:
    start_cycle(state, stream=RecordingStream(error=RuntimeError("boom")), env_api_key="sk")
    assert state.error == "Analysis failed: boom"

    start_cycle(state, stream=RecordingStream(error=RuntimeError()), env_api_key="sk")
    assert state.error == GENERIC_FAILURE_MESSAGE


def test_busy_state_refuses_second_cycle(state) -> None:
    stream = RecordingStream(["A"])
    state.set_busy(True)
    assert start_cycle(state, stream=stream, env_api_key="sk") is False
    assert stream.calls == []
    assert state.busy is True


def test_stream_receives_detached_snapshot(state) -> None:
    stream = RecordingStream(["A"])
    start_cycle(state, stream=stream, env_api_key="sk")
    snapshot = stream.calls[0][0]
    assert snapshot is not state
    assert snapshot.stock == state.stock


def test_concurrent_starts_run_one_cycle(state, monkeypatch) -> None:
    real_validate = runner.validate_request

    def slow_validate(s, env_api_key):
        key = real_validate(s, env_api_key)
        time.sleep(0.2)
        return key

    monkeypatch.setattr(runner, "validate_request", slow_validate)

    active = {"now": 0, "peak": 0}
    guard = threading.Lock()

    def stream(snapshot, on_fragment, api_key, *, now=None):
        with guard:
            active["now"] += 1
            active["peak"] = max(active["peak"], active["now"])
        time.sleep(0.1)
        on_fragment("X")
        with guard:
            active["now"] -= 1

    results = []
    threads = [
        threading.Thread(target=lambda: results.append(start_cycle(state, stream=stream, env_api_key="sk")))
        for _ in range(2)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert active["peak"] == 1
    assert sorted(results) == [False, True]
    assert state.result_text == "X"
    assert state.busy is False


def test_status_error_text_is_kept(state) -> None:
    stream = RecordingStream(error=ReportGenerationError("prompt is too long: 240401 tokens"))
    start_cycle(state, stream=stream, env_api_key="sk")
    assert state.error == "Analysis failed: prompt is too long: 240401 tokens"
