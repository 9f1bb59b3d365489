"""Tests for immediate and debounced update requests."""

from PySide6.QtTest import QTest

from annotate.ui.update_scheduler import UpdateScheduler


class Counter:
    def __init__(self):
        self.runs = 0

    def __call__(self):
        self.runs += 1


class TestUpdateScheduler:
    def test_immediate_runs_synchronously(self, qapp):
        counter = Counter()
        scheduler = UpdateScheduler(counter, delay_ms=50)
        scheduler.schedule(immediate=True)
        assert counter.runs == 1
        assert not scheduler.is_pending()

    def test_debounced_runs_once_after_delay(self, qapp):
        counter = Counter()
        scheduler = UpdateScheduler(counter, delay_ms=250)
        for _ in range(5):
            scheduler.schedule()
            QTest.qWait(10)
        assert counter.runs == 0
        assert scheduler.is_pending()
        QTest.qWait(700)
        assert counter.runs == 1
        assert not scheduler.is_pending()

    def test_immediate_supersedes_pending(self, qapp):
        counter = Counter()
        scheduler = UpdateScheduler(counter, delay_ms=40)
        scheduler.schedule()
        scheduler.schedule(immediate=True)
        QTest.qWait(120)
        assert counter.runs == 1

    def test_cancel(self, qapp):
        counter = Counter()
        scheduler = UpdateScheduler(counter, delay_ms=20)
        scheduler.schedule()
        scheduler.cancel()
        QTest.qWait(80)
        assert counter.runs == 0

    def test_default_delay(self, qapp):
        scheduler = UpdateScheduler(Counter())
        assert scheduler.delay_ms() == 500

    def test_bad_delay_falls_back(self, qapp):
        scheduler = UpdateScheduler(Counter(), delay_ms="soon")
        assert scheduler.delay_ms() == 500
        scheduler.set_delay(-5)
        assert scheduler.delay_ms() == 0

    def test_reason_signal(self, qapp):
        scheduler = UpdateScheduler(Counter(), delay_ms=10)
        reasons = []
        scheduler.cycleRan.connect(reasons.append)
        scheduler.schedule(immediate=True)
        scheduler.schedule()
        QTest.qWait(80)
        assert reasons == ["immediate", "debounced"]
