"""Shared test fixtures for backend tests.

Provides a FrameProcessor factory wired to FakeSegmenter so tests run
without model weights, and an API client with the segmenter patched out.
"""
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient


@pytest.fixture()
def fake_segmenter():
    from tests.fakes import FakeSegmenter

    return FakeSegmenter()


@pytest.fixture()
def observer():
    from tests.fakes import RecordingObserver

    return RecordingObserver()


@pytest.fixture()
def processor_factory(fake_segmenter, observer):
    """Create FrameProcessors with a fake segmenter and recording observer.

    Returns a factory function that accepts keyword overrides.
    Automatically shuts down all created processors on teardown.
    """
    from frame_pipeline import FrameProcessor

    created: list[FrameProcessor] = []

    def _factory(**kwargs) -> FrameProcessor:
        defaults = dict(segmenter=fake_segmenter, observers=[observer], target_size=64)
        defaults.update(kwargs)
        proc = FrameProcessor(**defaults)
        created.append(proc)
        return proc

    yield _factory

    for proc in created:
        gate = getattr(proc._segmenter, "gate", None)
        if gate is not None:
            gate.set()
        proc.shutdown(timeout=2)


@pytest.fixture()
def api_client(monkeypatch):
    """TestClient for api.app with the segmentation model mocked."""
    import api
    from tests.fakes import FakeSegmenter

    segmenter = FakeSegmenter(step=20, box=40)
    monkeypatch.setattr(api, "get_segmenter", lambda name, model_path=None: segmenter)

    with TestClient(api.app) as c:
        yield c
