"""Hand-written engine fakes shared by the tests."""

import numpy as np

from ocr_reader.modules.image_toolkit import SourceImage


class FakeSession:
    """Session-capable engine session recording every call it receives."""

    def __init__(self, text="session text", confidence=91.6, fail_on=None):
        self.text = text
        self.confidence = confidence
        self.fail_on = fail_on
        self.calls = []
        self.released = 0

    def _record(self, name):
        self.calls.append(name)
        if self.fail_on == name:
            raise RuntimeError(f"{name} exploded")

    def load(self):
        self._record("load")

    def load_language(self, language):
        self._record("load_language")
        self.language = language

    def initialize(self, language):
        self._record("initialize")

    def set_parameters(self, parameters):
        self._record("set_parameters")
        self.parameters = dict(parameters)

    def recognize(self, image):
        self._record("recognize")
        return {"data": {"text": self.text, "confidence": self.confidence}}

    def terminate(self):
        self.calls.append("terminate")
        self.released += 1


class AsyncFakeSession(FakeSession):
    async def load(self):
        self._record("load")

    async def initialize(self, language):
        self._record("initialize")

    async def recognize(self, image):
        self._record("recognize")
        return {"data": {"text": self.text, "confidence": self.confidence}}

    async def terminate(self):
        self.calls.append("terminate")
        self.released += 1


class SessionEngine:
    """Engine exposing only the session protocol."""

    def __init__(self, session=None):
        self.session = session or FakeSession()
        self.sessions_created = 0

    def create_session(self):
        self.sessions_created += 1
        return self.session


class StatelessEngine:
    """Engine exposing only the stateless protocol."""

    def __init__(self, result=None, events=None):
        self.result = result if result is not None else {"text": "stateless text"}
        self.events = events if events is not None else []
        self.calls = []

    def recognize(self, image, language):
        self.events.append("stateless")
        self.calls.append((image, language))
        return self.result


class DualEngine(StatelessEngine):
    """Engine exposing both protocols; shares an event log with its session."""

    def __init__(self, session=None, result=None):
        super().__init__(result=result)
        self.session = session or FakeSession()
        self.session.calls = self.events

    def create_session(self):
        return self.session


def make_image(width=4, height=3, rgba=(200, 120, 40, 255)):
    arr = np.empty((height, width, 4), dtype=np.uint8)
    arr[...] = rgba
    return SourceImage.from_array(arr)
