import asyncio
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from ocr_reader.modules.engine import EngineHandle, StatelessProtocol
from ocr_reader.modules.errors import (
    EngineUnavailable,
    ErrorKind,
    RecognitionFailed,
)
from ocr_reader.modules.ocr_config import RecognitionSettings
from ocr_reader.modules.orchestrator import EngineOrchestrator
from ocr_reader.tests.fakes import (
    AsyncFakeSession,
    DualEngine,
    FakeSession,
    SessionEngine,
    StatelessEngine,
)


def _recognize(engine, image, settings=None, **kwargs):
    orchestrator = EngineOrchestrator(EngineHandle(engine), **kwargs)
    return asyncio.run(orchestrator.recognize(image, settings or RecognitionSettings()))


def test_session_protocol_runs_full_lifecycle(image):
    engine = SessionEngine()
    settings = RecognitionSettings(language="eng", segmentation_mode=11)

    outcome = _recognize(engine, image, settings)

    assert outcome.raw_text == "session text"
    assert outcome.confidence == 92
    assert outcome.protocol == "session"
    assert engine.session.calls == [
        "load",
        "load_language",
        "initialize",
        "set_parameters",
        "recognize",
        "terminate",
    ]
    assert engine.session.language == "eng"
    assert engine.session.parameters == settings.engine_parameters()
    assert engine.session.released == 1


def test_session_is_preferred_over_stateless(image):
    engine = DualEngine()
    outcome = _recognize(engine, image)
    assert outcome.protocol == "session"
    assert "stateless" not in engine.events


def test_init_failure_falls_back_after_release(image):
    engine = DualEngine(
        session=FakeSession(fail_on="initialize"),
        result={"data": {"text": "fallback", "confidence": 55}},
    )
    settings = RecognitionSettings(language="jpn")

    outcome = _recognize(engine, image, settings)
    direct = asyncio.run(StatelessProtocol().run(engine, image, settings))

    assert outcome == direct
    assert engine.session.released == 1
    # release happens before the stateless call begins
    assert engine.events[:5] == [
        "load",
        "load_language",
        "initialize",
        "terminate",
        "stateless",
    ]
    assert engine.calls[0] == (image, "jpn")


def test_session_factory_returning_nothing_falls_back(image):
    engine = StatelessEngine(result={"text": "plain"})
    engine.create_session = lambda: None
    assert _recognize(engine, image).raw_text == "plain"


def test_session_without_recognize_is_released(image):
    session = MagicMock(spec=["terminate"])
    engine = MagicMock(spec=["create_session"])
    engine.create_session.return_value = session

    with pytest.raises(RecognitionFailed) as excinfo:
        _recognize(engine, image)

    assert excinfo.value.cause.kind is ErrorKind.SESSION_INIT_FAILED
    session.terminate.assert_called_once_with()


def test_recognition_failure_falls_back_to_stateless(image):
    engine = DualEngine(session=FakeSession(fail_on="recognize"))
    outcome = _recognize(engine, image)
    assert outcome.protocol == "stateless"
    assert outcome.raw_text == "stateless text"
    assert engine.session.released == 1


def test_recognition_failure_without_stateless_carries_cause(image):
    engine = SessionEngine(FakeSession(fail_on="recognize"))

    with pytest.raises(RecognitionFailed) as excinfo:
        _recognize(engine, image)

    assert isinstance(excinfo.value.cause, RuntimeError)
    assert excinfo.value.details == {"attempted": ["session"]}
    assert engine.session.released == 1


def test_both_protocols_failing_reports_last_error(image):
    engine = DualEngine(session=FakeSession(fail_on="load"))

    def broken(image, language):
        raise ValueError("stateless broke")

    engine.recognize = broken

    with pytest.raises(RecognitionFailed) as excinfo:
        _recognize(engine, image)

    assert isinstance(excinfo.value.cause, ValueError)
    assert excinfo.value.details == {"attempted": ["session", "stateless"]}


def test_missing_engine_is_unavailable(image):
    with pytest.raises(EngineUnavailable):
        _recognize(None, image)


def test_engine_without_protocols_fails(image):
    with pytest.raises(RecognitionFailed, match="no supported recognition protocol"):
        _recognize(object(), image)


def test_release_uses_first_available_method(image):
    session = MagicMock(spec=["recognize", "release", "close"])
    session.recognize.return_value = {"text": "ok"}
    engine = MagicMock(spec=["create_session"])
    engine.create_session.return_value = session

    _recognize(engine, image)

    session.release.assert_called_once_with()
    session.close.assert_not_called()


def test_release_errors_are_logged_not_raised(image, caplog):
    session = FakeSession()

    def broken_terminate():
        raise RuntimeError("teardown failed")

    session.terminate = broken_terminate

    with caplog.at_level(logging.WARNING, logger="ocr-reader.engine"):
        outcome = _recognize(SessionEngine(session), image)

    assert outcome.raw_text == "session text"
    assert "teardown failed" in caplog.text


def test_async_session_operations_are_awaited(image):
    engine = SessionEngine(AsyncFakeSession(text="async text", confidence=None))
    outcome = _recognize(engine, image)
    assert outcome.raw_text == "async text"
    assert outcome.confidence is None
    assert engine.session.released == 1


def test_async_stateless_engine(image):
    engine = MagicMock(spec=["recognize"])
    engine.recognize = AsyncMock(return_value={"text": "abc", "confidence": 49.5})

    outcome = _recognize(engine, image, RecognitionSettings(language="kor+eng"))

    assert (outcome.raw_text, outcome.confidence) == ("abc", 50)
    engine.recognize.assert_awaited_once_with(image, "kor+eng")


def test_protocol_order_is_configurable(image):
    engine = DualEngine()
    outcome = _recognize(engine, image, protocols=[StatelessProtocol()])
    assert outcome.protocol == "stateless"
    assert engine.session.calls == ["stateless"]


def test_async_loader_runs_once():
    loads = []

    async def loader():
        loads.append(1)
        await asyncio.sleep(0)
        return StatelessEngine()

    handle = EngineHandle.from_loader(loader)

    async def resolve_twice():
        return await asyncio.gather(handle.resolve(), handle.resolve())

    first, second = asyncio.run(resolve_twice())

    assert first is second
    assert loads == [1]
    assert handle.is_available


def test_failing_loader_is_unavailable():
    async def loader():
        raise OSError("model download failed")

    handle = EngineHandle.from_loader(loader)

    with pytest.raises(EngineUnavailable, match="model download failed"):
        asyncio.run(handle.resolve())


def test_set_engine_publishes_late_engine(image):
    handle = EngineHandle()
    assert not handle.is_available

    handle.set_engine(StatelessEngine())
    orchestrator = EngineOrchestrator(handle)
    outcome = asyncio.run(orchestrator.recognize(image, RecognitionSettings()))

    assert outcome.raw_text == "stateless text"


def test_failed_load_is_retried_on_next_resolve():
    calls = []

    async def flaky_loader():
        calls.append(1)
        if len(calls) == 1:
            raise OSError("first load failed")
        return StatelessEngine()

    handle = EngineHandle.from_loader(flaky_loader)

    with pytest.raises(EngineUnavailable):
        asyncio.run(handle.resolve())
    engine = asyncio.run(handle.resolve())

    assert isinstance(engine, StatelessEngine)
    assert len(calls) == 2


def test_plain_loader_is_supported():
    engine = StatelessEngine()
    handle = EngineHandle.from_loader(lambda: engine)
    assert asyncio.run(handle.resolve()) is engine


def test_plain_loader_errors_are_unavailable():
    def loader():
        raise RuntimeError("no model on disk")

    with pytest.raises(EngineUnavailable, match="no model on disk"):
        asyncio.run(EngineHandle.from_loader(loader).resolve())
