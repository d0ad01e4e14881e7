"""Tests for the ratio engine and verdict classifier."""

import pytest

from jstatcheck.errors import CollectionFailure
from jstatcheck.evaluation import (
    alert_level,
    build_perfdata,
    classify,
    derive_metrics,
    evaluate,
    ratio,
)
from jstatcheck.types import (
    DerivedMetrics,
    GcSample,
    MetaspaceCapacitySample,
    Status,
    Thresholds,
)


def make_metrics(heap_ratio: int, metaspace_ratio: int) -> DerivedMetrics:
    return DerivedMetrics(
        heap_used=heap_ratio,
        heap_capacity=100,
        metaspace_used=metaspace_ratio,
        metaspace_capacity=100,
        heap_ratio=heap_ratio,
        metaspace_ratio=metaspace_ratio,
    )


def make_gc_sample(**overrides) -> GcSample:
    values = dict(
        s0_used=0.0,
        s1_used=1024.0,
        eden_used=51200.0,
        old_used=20480.0,
        s0_capacity=8192.0,
        s1_capacity=8192.0,
        eden_capacity=65536.0,
        old_capacity=131072.0,
        metaspace_used=45056.0,
    )
    values.update(overrides)
    return GcSample(**values)


class TestRatio:
    """Tests for the truncating percentage."""

    def test_exact_division(self):
        assert ratio(33, 100) == 33

    def test_truncates_instead_of_rounding(self):
        assert ratio(1, 3) == 33
        assert ratio(2, 3) == 66

    def test_full_capacity_is_100(self):
        assert ratio(4096, 4096) == 100

    def test_not_clamped_above_100(self):
        assert ratio(150, 100) == 150

    def test_alert_level_truncates(self):
        assert alert_level(212992, 90) == 191692
        assert alert_level(65536, 95) == 62259


class TestDeriveMetrics:
    """Tests for derive_metrics."""

    def test_sums_generations(self):
        metrics = derive_metrics(make_gc_sample(), MetaspaceCapacitySample(65536.0))

        assert metrics.heap_used == 72704
        assert metrics.heap_capacity == 212992
        assert metrics.heap_ratio == 34
        assert metrics.metaspace_used == 45056
        assert metrics.metaspace_capacity == 65536
        assert metrics.metaspace_ratio == 68

    def test_truncates_sum_of_fractional_values(self):
        """Fractions are summed before truncation."""
        gc = make_gc_sample(s0_used=0.5, s1_used=0.5, eden_used=0.5, old_used=0.5)

        metrics = derive_metrics(gc, MetaspaceCapacitySample(65536.0))

        assert metrics.heap_used == 2

    def test_metaspace_used_is_read_directly(self):
        gc = make_gc_sample(metaspace_used=1234.9)

        metrics = derive_metrics(gc, MetaspaceCapacitySample(65536.0))

        assert metrics.metaspace_used == 1234

    def test_zero_heap_capacity_is_collection_failure(self):
        gc = make_gc_sample(
            s0_capacity=0.0, s1_capacity=0.0, eden_capacity=0.0, old_capacity=0.0
        )

        with pytest.raises(CollectionFailure, match="Can't get GC statistics") as exc:
            derive_metrics(gc, MetaspaceCapacitySample(65536.0))
        assert exc.value.status == Status.CRITICAL

    def test_zero_metaspace_capacity_is_collection_failure(self):
        with pytest.raises(CollectionFailure, match="Can't get MetaSpace statistics"):
            derive_metrics(make_gc_sample(), MetaspaceCapacitySample(0.0))


class TestClassify:
    """Tests for the ordered threshold checks."""

    def test_all_below_thresholds_is_ok(self):
        verdict = classify(make_metrics(50, 50), Thresholds())

        assert verdict.status == Status.OK
        assert verdict.reason == "alive"

    def test_metaspace_reported_before_heap(self):
        verdict = classify(make_metrics(96, 96), Thresholds(warning=90, critical=95))

        assert verdict.status == Status.CRITICAL
        assert verdict.status == 2
        assert "MetaSpace" in verdict.reason
        assert "Heap" not in verdict.reason

    def test_critical_heap(self):
        verdict = classify(make_metrics(97, 10), Thresholds())

        assert verdict.status == Status.CRITICAL
        assert verdict.reason == "critical Heap (97% of MaxHeapSize)"

    def test_critical_beats_warning_even_for_heap(self):
        """A critical heap wins over a metaspace that is only at warning level."""
        verdict = classify(make_metrics(97, 91), Thresholds())

        assert verdict.status == Status.CRITICAL
        assert "Heap" in verdict.reason

    def test_warning_metaspace(self):
        verdict = classify(make_metrics(91, 92), Thresholds())

        assert verdict.status == Status.WARNING
        assert verdict.reason == "warning MetaSpace (92% of MaxMetaSpaceSize)"

    def test_warning_heap(self):
        verdict = classify(make_metrics(91, 10), Thresholds())

        assert verdict.status == Status.WARNING
        assert verdict.reason == "warning Heap (91% of MaxHeapSize)"

    def test_zero_critical_disables_critical_tier(self):
        verdict = classify(make_metrics(99, 10), Thresholds(warning=90, critical=0))

        assert verdict.status == Status.WARNING
        assert verdict.status == 1

    def test_negative_warning_disables_warning_tier(self):
        verdict = classify(make_metrics(93, 93), Thresholds(warning=-1, critical=95))

        assert verdict.status == Status.OK

    def test_both_tiers_disabled(self):
        verdict = classify(make_metrics(100, 100), Thresholds(warning=0, critical=0))

        assert verdict.status == Status.OK

    @pytest.mark.parametrize(
        "heap_ratio,expected",
        [(89, Status.OK), (90, Status.WARNING), (94, Status.WARNING), (95, Status.CRITICAL)],
    )
    def test_threshold_boundary_is_inclusive(self, heap_ratio, expected):
        verdict = classify(make_metrics(heap_ratio, 0), Thresholds(warning=90, critical=95))

        assert verdict.status == expected

    def test_verdict_carries_perfdata(self):
        verdict = classify(make_metrics(10, 10), Thresholds())

        assert [d.label for d in verdict.perfdata] == [
            "heap",
            "heap_ratio",
            "metaspace",
            "metaspace_ratio",
        ]


class TestBuildPerfdata:
    """Tests for build_perfdata."""

    def test_absolute_and_ratio_values(self):
        metrics = derive_metrics(make_gc_sample(), MetaspaceCapacitySample(65536.0))

        heap, heap_ratio, metaspace, metaspace_ratio = build_perfdata(
            metrics, Thresholds(warning=90, critical=95)
        )

        assert (heap.value, heap.warning, heap.critical) == (72704, 191692, 202342)
        assert (heap.minimum, heap.maximum) == (0, 212992)
        assert heap_ratio.unit == "%"
        assert (heap_ratio.warning, heap_ratio.critical, heap_ratio.maximum) == (90, 95, 100)
        assert (metaspace.value, metaspace.warning, metaspace.critical) == (45056, 58982, 62259)
        assert metaspace.maximum == 65536
        assert metaspace_ratio.value == 68


class TestEvaluate:
    """Tests for evaluate, which chains derive_metrics and classify."""

    def test_realistic_sample_is_ok(self):
        verdict = evaluate(
            make_gc_sample(), MetaspaceCapacitySample(65536.0), Thresholds()
        )

        assert verdict.status == Status.OK
        assert verdict.perfdata[3].value == 68

    def test_nearly_full_metaspace_is_critical(self):
        verdict = evaluate(
            make_gc_sample(metaspace_used=64000.0),
            MetaspaceCapacitySample(65536.0),
            Thresholds(),
        )

        assert verdict.status == Status.CRITICAL
        assert verdict.reason == "critical MetaSpace (97% of MaxMetaSpaceSize)"
