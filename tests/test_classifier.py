"""Tests for the ActivityClassifier."""

from conftest import make_metrics

from idlewatch.classifier import CPU_THRESHOLD, DEBOUNCE_SECONDS, IO_THRESHOLD, ActivityClassifier
from idlewatch.models import InstanceStatus

SAMPLE_A = make_metrics(cpu_time=1000, read_bytes=5000, write_bytes=5000, timestamp=0.0)


class TestClassify:
    """Tests for classifying a pair of samples."""

    def test_quiet_interval_is_idle(self):
        """Small deltas are Idle and the CPU rate is ticks per second."""
        classifier = ActivityClassifier()
        sample_b = make_metrics(cpu_time=1010, read_bytes=5100, write_bytes=5100, timestamp=1.0)

        status, cpu_percent = classifier.classify(1, SAMPLE_A, sample_b)

        assert status is InstanceStatus.IDLE
        assert cpu_percent == 10.0

    def test_write_burst_is_active(self):
        """A write delta above the I/O threshold is Active."""
        classifier = ActivityClassifier()
        sample_c = make_metrics(cpu_time=1200, read_bytes=5000, write_bytes=40000, timestamp=1.0)

        status, _ = classifier.classify(1, SAMPLE_A, sample_c)

        assert status is InstanceStatus.ACTIVE
        assert classifier.last_activity(1) == 1.0

    def test_cpu_burst_is_active(self):
        """A CPU delta above the threshold is Active."""
        classifier = ActivityClassifier()
        current = make_metrics(cpu_time=1000 + CPU_THRESHOLD + 1, read_bytes=5000, write_bytes=5000, timestamp=1.0)

        status, cpu_percent = classifier.classify(1, SAMPLE_A, current)

        assert status is InstanceStatus.ACTIVE
        assert cpu_percent == CPU_THRESHOLD + 1

    def test_read_burst_is_active(self):
        """A read delta above the I/O threshold is Active."""
        classifier = ActivityClassifier()
        current = make_metrics(cpu_time=1000, read_bytes=5000 + IO_THRESHOLD + 1, write_bytes=5000, timestamp=1.0)

        assert classifier.classify(1, SAMPLE_A, current)[0] is InstanceStatus.ACTIVE

    def test_deltas_at_threshold_are_not_bursts(self):
        """Thresholds are exclusive."""
        classifier = ActivityClassifier()
        current = make_metrics(
            cpu_time=1000 + CPU_THRESHOLD,
            read_bytes=5000 + IO_THRESHOLD,
            write_bytes=5000 + IO_THRESHOLD,
            timestamp=1.0,
        )

        assert classifier.classify(1, SAMPLE_A, current)[0] is InstanceStatus.IDLE

    def test_zero_elapsed_is_idle(self):
        """Back-to-back samples are Idle with no CPU rate, even with large deltas."""
        classifier = ActivityClassifier()
        current = make_metrics(cpu_time=99999, read_bytes=10**9, write_bytes=10**9, timestamp=0.0)

        assert classifier.classify(1, SAMPLE_A, current) == (InstanceStatus.IDLE, 0.0)
        assert classifier.last_activity(1) is None

    def test_negative_elapsed_is_idle(self):
        """A clock going backwards is treated like zero elapsed time."""
        classifier = ActivityClassifier()
        previous = make_metrics(cpu_time=0, timestamp=10.0)
        current = make_metrics(cpu_time=5000, timestamp=9.0)

        assert classifier.classify(1, previous, current) == (InstanceStatus.IDLE, 0.0)

    def test_counter_regression_is_clamped(self):
        """Counters going backwards never produce activity."""
        classifier = ActivityClassifier()
        previous = make_metrics(cpu_time=100000, read_bytes=10**8, write_bytes=10**8, timestamp=0.0)
        current = make_metrics(cpu_time=10, read_bytes=0, write_bytes=0, timestamp=1.0)

        status, cpu_percent = classifier.classify(1, previous, current)

        assert status is InstanceStatus.IDLE
        assert cpu_percent == 0.0

    def test_custom_thresholds(self):
        """Thresholds are configurable."""
        classifier = ActivityClassifier(cpu_threshold=5, io_threshold=50)
        current = make_metrics(cpu_time=1010, read_bytes=5000, write_bytes=5000, timestamp=1.0)

        assert classifier.classify(1, SAMPLE_A, current)[0] is InstanceStatus.ACTIVE


class TestDebounce:
    """Tests for the trailing debounce window."""

    def _burst_then_quiet(self, classifier, quiet_at: float):
        burst = make_metrics(cpu_time=1000, write_bytes=100000, timestamp=1.0)
        classifier.classify(1, make_metrics(cpu_time=0, timestamp=0.0), burst)
        quiet = make_metrics(cpu_time=1001, write_bytes=100000, timestamp=quiet_at)
        return classifier.classify(1, burst, quiet)[0]

    def test_active_within_window(self):
        """No burst shortly after a burst stays Active."""
        classifier = ActivityClassifier()
        assert self._burst_then_quiet(classifier, 1.0 + DEBOUNCE_SECONDS - 0.5) is InstanceStatus.ACTIVE

    def test_idle_after_window(self):
        """No burst once the window has passed is Idle."""
        classifier = ActivityClassifier()
        assert self._burst_then_quiet(classifier, 1.0 + DEBOUNCE_SECONDS) is InstanceStatus.IDLE

    def test_debounce_is_per_pid(self):
        """A burst on one pid does not keep another Active."""
        classifier = ActivityClassifier()
        classifier.classify(1, SAMPLE_A, make_metrics(cpu_time=5000, timestamp=1.0))
        quiet = make_metrics(cpu_time=1001, read_bytes=5000, write_bytes=5000, timestamp=2.0)

        assert classifier.classify(2, SAMPLE_A, quiet)[0] is InstanceStatus.IDLE


class TestObserve:
    """Tests for the stateful observe() entry point."""

    def test_first_observation_is_idle(self):
        """A pid with no history is Idle with no CPU rate."""
        classifier = ActivityClassifier()
        burst = make_metrics(cpu_time=10**6, read_bytes=10**9, timestamp=5.0)

        assert classifier.observe(7, burst) == (InstanceStatus.IDLE, None)
        assert classifier.last_activity(7) is None

    def test_second_observation_compares_with_first(self):
        """The stored sample is used as the baseline."""
        classifier = ActivityClassifier()
        classifier.observe(7, SAMPLE_A)
        sample_c = make_metrics(cpu_time=1200, read_bytes=5000, write_bytes=40000, timestamp=1.0)

        assert classifier.observe(7, sample_c)[0] is InstanceStatus.ACTIVE

    def test_sample_stored_regardless_of_outcome(self):
        """Each observation becomes the next baseline."""
        classifier = ActivityClassifier()
        classifier.observe(7, SAMPLE_A)
        classifier.observe(7, make_metrics(cpu_time=1000, read_bytes=5000, write_bytes=5000, timestamp=0.0))
        later = make_metrics(cpu_time=1030, read_bytes=5000, write_bytes=5000, timestamp=1.0)

        _, cpu_percent = classifier.observe(7, later)
        assert cpu_percent == 30.0

    def test_forget_discards_history(self):
        """A recycled pid starts over as Idle."""
        classifier = ActivityClassifier()
        classifier.observe(7, SAMPLE_A)
        classifier.observe(7, make_metrics(cpu_time=5000, timestamp=1.0))
        assert classifier.last_activity(7) == 1.0

        classifier.forget(7)

        assert classifier.last_activity(7) is None
        reused = make_metrics(cpu_time=9000, write_bytes=10**6, timestamp=2.0)
        assert classifier.observe(7, reused) == (InstanceStatus.IDLE, None)

    def test_forget_unknown_pid(self):
        """Forgetting an unknown pid is a no-op."""
        classifier = ActivityClassifier()
        classifier.forget(12345)
        assert classifier.last_activity(12345) is None
