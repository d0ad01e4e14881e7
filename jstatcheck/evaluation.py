"""Heap and metaspace ratios, and the verdict derived from them."""

from jstatcheck.errors import CollectionFailure
from jstatcheck.types import (
    DerivedMetrics,
    GcSample,
    MetaspaceCapacitySample,
    PerfDatum,
    Status,
    Thresholds,
    Verdict,
)

GC_STATISTICS_ERROR = "Can't get GC statistics"
METASPACE_STATISTICS_ERROR = "Can't get MetaSpace statistics"


# ===== Ratio engine =====


def ratio(used: int, capacity: int) -> int:
    """Percentage of capacity in use, truncated (1 of 3 is 33, never 34)."""
    return used * 100 // capacity


def alert_level(capacity: int, percent: int) -> int:
    return capacity * percent // 100


def derive_metrics(
    gc: GcSample, capacity: MetaspaceCapacitySample
) -> DerivedMetrics:
    # Sum the raw jstat values first, then truncate, like printf "%d" would.
    heap_used = int(gc.s0_used + gc.s1_used + gc.eden_used + gc.old_used)
    heap_capacity = int(
        gc.s0_capacity + gc.s1_capacity + gc.eden_capacity + gc.old_capacity
    )
    metaspace_used = int(gc.metaspace_used)
    metaspace_capacity = int(capacity.max_capacity)

    if heap_capacity <= 0:
        raise CollectionFailure(GC_STATISTICS_ERROR)
    if metaspace_capacity <= 0:
        raise CollectionFailure(METASPACE_STATISTICS_ERROR)

    return DerivedMetrics(
        heap_used=heap_used,
        heap_capacity=heap_capacity,
        metaspace_used=metaspace_used,
        metaspace_capacity=metaspace_capacity,
        heap_ratio=ratio(heap_used, heap_capacity),
        metaspace_ratio=ratio(metaspace_used, metaspace_capacity),
    )


def build_perfdata(
    metrics: DerivedMetrics, thresholds: Thresholds
) -> list[PerfDatum]:
    return [
        PerfDatum(
            label="heap",
            value=metrics.heap_used,
            warning=alert_level(metrics.heap_capacity, thresholds.warning),
            critical=alert_level(metrics.heap_capacity, thresholds.critical),
            minimum=0,
            maximum=metrics.heap_capacity,
        ),
        PerfDatum(
            label="heap_ratio",
            value=metrics.heap_ratio,
            warning=thresholds.warning,
            critical=thresholds.critical,
            minimum=0,
            maximum=100,
            unit="%",
        ),
        PerfDatum(
            label="metaspace",
            value=metrics.metaspace_used,
            warning=alert_level(metrics.metaspace_capacity, thresholds.warning),
            critical=alert_level(metrics.metaspace_capacity, thresholds.critical),
            minimum=0,
            maximum=metrics.metaspace_capacity,
        ),
        PerfDatum(
            label="metaspace_ratio",
            value=metrics.metaspace_ratio,
            warning=thresholds.warning,
            critical=thresholds.critical,
            minimum=0,
            maximum=100,
            unit="%",
        ),
    ]


# ===== Verdict classifier =====


def classify(metrics: DerivedMetrics, thresholds: Thresholds) -> Verdict:
    """Apply the thresholds to one snapshot.

    Critical is checked before warning, and within each tier metaspace is
    checked before heap, so a full metaspace is never reported as a heap
    problem. A threshold of zero or below turns its tier off.
    """
    metaspace = f"MetaSpace ({metrics.metaspace_ratio}% of MaxMetaSpaceSize)"
    heap = f"Heap ({metrics.heap_ratio}% of MaxHeapSize)"

    tiers = [
        (Status.CRITICAL, "critical", thresholds.critical),
        (Status.WARNING, "warning", thresholds.warning),
    ]
    regions = [
        (metrics.metaspace_ratio, metaspace),
        (metrics.heap_ratio, heap),
    ]
    perfdata = build_perfdata(metrics, thresholds)

    for status, level, threshold in tiers:
        if threshold <= 0:
            continue
        for current, region in regions:
            if current >= threshold:
                return Verdict(
                    status=status, reason=f"{level} {region}", perfdata=perfdata
                )

    return Verdict(status=Status.OK, reason="alive", perfdata=perfdata)


def evaluate(
    gc: GcSample, capacity: MetaspaceCapacitySample, thresholds: Thresholds
) -> Verdict:
    return classify(derive_metrics(gc, capacity), thresholds)
