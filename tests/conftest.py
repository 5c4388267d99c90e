import threading

import pytest

from qa_demo.worker import InferenceWorker


class StubPipeline:
    def __init__(self, output=None, error=None, gate=None):
        self.output = output if output is not None else {"answer": "Paris", "score": 0.92}
        self.error = error
        self.gate = gate
        self.calls = []

    def infer(self, question, context):
        self.calls.append((question, context))
        if self.gate is not None:
            self.gate.wait(5)
        if self.error is not None:
            raise self.error
        return self.output


class CountingFactory:
    """Stub pipeline constructor: reports scripted progress, may fail first."""

    def __init__(self, pipeline=None, progress=(), errors=()):
        self.pipeline = pipeline or StubPipeline()
        self.progress = list(progress)
        self.errors = list(errors)
        self.calls = 0

    def __call__(self, sink):
        self.calls += 1
        for value in self.progress:
            sink(value)
        if self.errors:
            raise self.errors.pop(0)
        return self.pipeline


class Recorder:
    def __init__(self):
        self.messages = []
        self._cond = threading.Condition()

    def __call__(self, message):
        with self._cond:
            self.messages.append(message)
            self._cond.notify_all()

    def wait_for(self, predicate, timeout=5.0):
        with self._cond:
            ok = self._cond.wait_for(lambda: predicate(self.messages), timeout)
        assert ok, f"timed out, got {self.messages!r}"
        return list(self.messages)

    def wait_count(self, n, timeout=5.0):
        return self.wait_for(lambda msgs: len(msgs) >= n, timeout)

    def terminal(self):
        return [m for m in self.messages if m.kind in ("complete", "error")]


class FakeWorker:
    """Synchronous stand-in for InferenceWorker used by controller/app tests."""

    def __init__(self):
        self.listeners = []
        self.posted = []
        self.started = False
        self.terminated = False

    def add_listener(self, listener):
        self.listeners.append(listener)

    def remove_listener(self, listener):
        self.listeners.remove(listener)

    def start(self):
        self.started = True

    def post_message(self, payload):
        self.posted.append(payload)

    def terminate(self):
        self.terminated = True

    def emit(self, message):
        for listener in list(self.listeners):
            listener(message)


@pytest.fixture
def make_worker():
    workers = []

    def build(factory=None, eager_load=True):
        factory = factory or CountingFactory()
        recorder = Recorder()
        worker = InferenceWorker(factory, eager_load=eager_load)
        worker.add_listener(recorder)
        workers.append(worker)
        return worker, recorder

    yield build
    for worker in workers:
        worker.terminate()
        worker.join(1)


@pytest.fixture
def fake_workers():
    created = []

    def factory():
        worker = FakeWorker()
        created.append(worker)
        return worker

    factory.created = created
    return factory


@pytest.fixture
def counting_factory():
    return CountingFactory


@pytest.fixture
def stub_pipeline():
    return StubPipeline
