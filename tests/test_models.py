import pytest
from pydantic import ValidationError

from extproc.core.models import FailureKind, ProcessResult, ResultList


def _ok(**kw):
    data = dict(process="convert", command="echo hi ", exit_code=0, out="hi\n")
    data.update(kw)
    return ProcessResult(**data)


def _failed(**kw):
    data = dict(
        process="convert",
        command="missing ",
        exit_code=-1,
        error="Exception after 00:00:00.001 of work; boom",
        exception="FileNotFoundError: boom",
        failure=FailureKind.SPAWN_ERROR,
    )
    data.update(kw)
    return ProcessResult(**data)


def test_result_flags():
    ok = _ok()
    assert ok.is_ok and not ok.is_warn and not ok.is_error
    assert ok.exception is None and ok.failure is None

    err = _failed()
    assert err.is_error and not err.is_warn

    warn = _failed(optional=True)
    assert warn.is_warn and not warn.is_error

    nonzero = _ok(exit_code=3, out="")
    assert nonzero.is_error and nonzero.failure is None


def test_result_is_frozen():
    r = _ok()
    with pytest.raises(ValidationError):
        r.exit_code = 5
    assert r.exit_code == 0


def test_result_validation_ties_minus_one_to_failure():
    with pytest.raises(ValidationError):
        ProcessResult(process="p", exit_code=-1)
    with pytest.raises(ValidationError):
        ProcessResult(process="p", exit_code=0, failure=FailureKind.TIMEOUT)
    with pytest.raises(ValidationError):
        ProcessResult(process="p", exit_code=0, exception="RuntimeError: x")
    t = ProcessResult(process="p", exit_code=-1, failure=FailureKind.TIMEOUT, error="Timed out")
    assert t.timed_out and t.exception is None


def test_result_json_dump():
    raw = _failed().model_dump(mode="json")
    assert raw["failure"] == "spawn_error"
    assert raw["exit_code"] == -1
    assert ProcessResult.model_validate(raw) == _failed()


def test_result_list():
    results = ResultList()
    assert results.last is None
    assert not results.has_error()

    results.add(_ok())
    warn = results.add(_failed(optional=True))
    assert results.last is warn
    assert results.warnings() == [warn]
    assert not results.has_error()

    results.add(_ok(exit_code=2))
    assert results.has_error()
    assert len(results) == 3
    assert [r.exit_code for r in results] == [0, -1, 2]
