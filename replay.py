# replay.py
import collections
import logging

from cache import SetAssocCache
from trace_reader import Operation, format_record

logger = logging.getLogger(__name__)

# number of cache accesses issued per record kind
ACCESSES_PER_KIND = {
    Operation.LOAD: 1,
    Operation.STORE: 1,
    Operation.MODIFY: 2,
    Operation.OTHER: 0,
}

ReplayReport = collections.namedtuple("ReplayReport", "stats records loads stores modifies skipped")


class TraceReplayer:
    """
    Replays trace records, in order, through one SetAssocCache.

    verbose : callable, optional
        Receives one line per replayed record, e.g. "L 10,1 miss eviction".
        Skipped records are not reported.
    """

    def __init__(self, config, verbose=None):
        self.cache = SetAssocCache(config)
        self.verbose = verbose
        self.kind_counts = collections.Counter()

    def step(self, record):
        self.kind_counts[record.kind] += 1
        outcomes = [self.cache.access(record.address)
                    for _ in range(ACCESSES_PER_KIND[record.kind])]
        if self.verbose and outcomes:
            text = format_record(record).strip()
            self.verbose(" ".join([text] + [o.value for o in outcomes]))
        return outcomes

    def run(self, records):
        for record in records:
            self.step(record)
        report = self.report()
        logger.info(
            "replayed %d records: hits=%d misses=%d evictions=%d",
            report.records, *report.stats,
        )
        return report

    def report(self):
        counts = self.kind_counts
        return ReplayReport(
            stats=self.cache.stats(),
            records=sum(counts.values()),
            loads=counts[Operation.LOAD],
            stores=counts[Operation.STORE],
            modifies=counts[Operation.MODIFY],
            skipped=counts[Operation.OTHER],
        )


def simulate(config, records, verbose=None):
    """Run one fresh simulation over `records` and return its CacheStats."""
    return TraceReplayer(config, verbose=verbose).run(records).stats
