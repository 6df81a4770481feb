"""Tests for frame gating and the live scan session."""

import threading

import pytest

from shelfscan.core.capture import FrameGate, ScanSession
from shelfscan.core.errors import CaptureUnavailable

from conftest import RED, solid_image


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


class BlockingCoordinator:
    """Search stand-in that blocks until released."""

    def __init__(self, results=None):
        self.results = results if results is not None else ["record"]
        self.release = threading.Event()
        self.started = threading.Event()
        self.calls = 0

    def search_by_image(self, image):
        self.calls += 1
        self.started.set()
        self.release.wait(timeout=5)
        return self.results


class BrokenCamera:
    def start(self, on_frame):
        raise PermissionError("camera access denied")

    def stop(self):
        pass


class TestFrameGate:
    def test_first_frame_only_primes(self):
        clock = FakeClock()
        gate = FrameGate(interval=0.2, clock=clock)
        assert gate.accept() is False
        clock.now += 0.2
        assert gate.accept() is True

    def test_frames_inside_interval_are_rejected(self):
        clock = FakeClock()
        gate = FrameGate(interval=0.2, clock=clock)
        gate.accept()
        clock.now += 0.1
        assert gate.accept() is False
        clock.now += 0.15
        assert gate.accept() is True
        clock.now += 0.05
        assert gate.accept() is False

    def test_reset_primes_again(self):
        clock = FakeClock()
        gate = FrameGate(interval=0.2, clock=clock)
        gate.accept()
        gate.reset()
        clock.now += 1
        assert gate.accept() is False


def open_gate():
    """Gate that accepts every frame after priming."""
    gate = FrameGate(interval=0.0, clock=FakeClock())
    return gate


class TestScanSession:
    def test_frames_before_start_are_ignored(self):
        session = ScanSession(BlockingCoordinator(), on_results=lambda records: None, gate=open_gate())
        assert session.submit_frame(solid_image(RED)) is False

    def test_results_are_delivered(self):
        coordinator = BlockingCoordinator()
        coordinator.release.set()
        delivered = threading.Event()
        received = []

        def on_results(records):
            received.append(records)
            delivered.set()

        session = ScanSession(coordinator, on_results=on_results, gate=open_gate())
        session.start()
        try:
            assert session.submit_frame(solid_image(RED)) is False  # primes the gate
            assert session.submit_frame(solid_image(RED)) is True
            assert delivered.wait(timeout=5)
        finally:
            session.stop()
        assert received == [["record"]]

    def test_frames_are_dropped_while_searching(self):
        coordinator = BlockingCoordinator()
        session = ScanSession(coordinator, on_results=lambda records: None, gate=open_gate())
        session.start()
        try:
            session.submit_frame(solid_image(RED))
            assert session.submit_frame(solid_image(RED)) is True
            assert coordinator.started.wait(timeout=5)
            assert session.submit_frame(solid_image(RED)) is False
        finally:
            coordinator.release.set()
            session.stop()
        assert coordinator.calls == 1

    def test_results_after_stop_are_discarded(self):
        coordinator = BlockingCoordinator()
        received = []
        session = ScanSession(coordinator, on_results=received.append, gate=open_gate())
        session.start()
        session.submit_frame(solid_image(RED))
        session.submit_frame(solid_image(RED))
        assert coordinator.started.wait(timeout=5)
        worker = session._executor
        session.stop()

        coordinator.release.set()
        worker.shutdown(wait=True)
        assert received == []

    def test_restart_accepts_frames_despite_stale_search(self):
        coordinator = BlockingCoordinator()
        received = []
        session = ScanSession(coordinator, on_results=received.append, gate=open_gate())
        session.start()
        session.submit_frame(solid_image(RED))
        session.submit_frame(solid_image(RED))
        assert coordinator.started.wait(timeout=5)
        stale_worker = session._executor
        session.stop()

        session.start()
        try:
            session.submit_frame(solid_image(RED))
            assert session.submit_frame(solid_image(RED)) is True
        finally:
            coordinator.release.set()
            stale_worker.shutdown(wait=True)
            session._executor.shutdown(wait=True)
            session.stop()
        assert received == [["record"]]

    def test_camera_failure_is_capture_unavailable(self):
        session = ScanSession(BlockingCoordinator(), on_results=lambda records: None, source=BrokenCamera())
        with pytest.raises(CaptureUnavailable):
            session.start()
        assert session.running is False
