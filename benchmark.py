# benchmark.py
import os
import json
import time
import logging
import threading
import numpy as np

from cache import CacheConfig, ConfigurationError
from replay import TraceReplayer
from trace_reader import Operation, TraceRecord

logger = logging.getLogger(__name__)

ACCESS_PATTERNS = ("sequential", "random", "mixed")


class TraceGenerator:
    """
    Builds a reproducible synthetic data trace.

    Addresses walk a working set of `working_set_bytes` in strides of
    `access_size` bytes. Each record is a Modify with probability
    `modify_ratio`, otherwise a Load with probability `read_ratio` or a Store.
    """

    def __init__(self, working_set_bytes=64 * 1024, access_size=8, access_pattern="mixed",
                 read_ratio=0.8, modify_ratio=0.1, random_seed=None):
        if access_pattern not in ACCESS_PATTERNS:
            raise ConfigurationError(f"unknown access pattern {access_pattern!r}, expected one of {ACCESS_PATTERNS}")
        if not 0.0 <= read_ratio <= 1.0 or not 0.0 <= modify_ratio <= 1.0:
            raise ConfigurationError("read_ratio and modify_ratio must be within [0, 1]")
        self.access_size = access_size
        self.num_slots = max(1, working_set_bytes // access_size)
        self.access_pattern = access_pattern
        self.read_ratio = read_ratio
        self.modify_ratio = modify_ratio
        self.rng = np.random.default_rng(random_seed)
        self._seq_ptr = 0

    @classmethod
    def from_config(cls, bench_cfg):
        return cls(
            working_set_bytes=bench_cfg.get("working_set_bytes", 64 * 1024),
            access_size=bench_cfg.get("access_size", 8),
            access_pattern=bench_cfg.get("access_pattern", "mixed"),
            read_ratio=bench_cfg.get("read_ratio", 0.8),
            modify_ratio=bench_cfg.get("modify_ratio", 0.1),
            random_seed=bench_cfg.get("random_seed", None),
        )

    def _next_slot(self):
        if self.access_pattern == "sequential":
            return self._sequential_slot()
        elif self.access_pattern == "random":
            return int(self.rng.integers(0, self.num_slots))
        else:  # mixed: mostly sequential with some random
            if self.rng.random() < 0.8:
                return self._sequential_slot()
            return int(self.rng.integers(0, self.num_slots))

    def _sequential_slot(self):
        slot = self._seq_ptr
        self._seq_ptr = (slot + 1) % self.num_slots
        return slot

    def _next_kind(self):
        if self.rng.random() < self.modify_ratio:
            return Operation.MODIFY
        if self.rng.random() < self.read_ratio:
            return Operation.LOAD
        return Operation.STORE

    def records(self, num_records):
        for _ in range(num_records):
            kind = self._next_kind()
            addr = self._next_slot() * self.access_size
            yield TraceRecord(kind, addr, self.access_size)


class SweepRunner:
    """
    Replays one record list under several cache geometries.

    Each geometry gets its own TraceReplayer, run on a worker thread; no
    cache state is shared between threads, only the result list.
    """

    def __init__(self, records, geometries, num_threads=4):
        self.records = list(records)
        self.geometries = [g if isinstance(g, CacheConfig) else CacheConfig.from_dict(g)
                           for g in geometries]
        for g in self.geometries:
            g.validate()
        self.num_threads = max(1, num_threads)
        self.results_lock = threading.Lock()
        self.results = []

    def _run_one(self, config):
        start = time.time()
        replayer = TraceReplayer(config)
        report = replayer.run(self.records)
        duration = time.time() - start
        hits, misses, evictions = report.stats
        accesses = hits + misses
        return {
            "set_index_bits": config.set_index_bits,
            "block_offset_bits": config.block_offset_bits,
            "associativity": config.associativity,
            "cache_size_bytes": config.number_of_sets * config.associativity * config.block_size,
            "hits": hits,
            "misses": misses,
            "evictions": evictions,
            "used_lines": replayer.cache.occupancy()["used_lines"],
            "miss_rate": misses / accesses if accesses else 0.0,
            "duration_s": duration,
        }

    def _worker(self, configs):
        local_results = [self._run_one(c) for c in configs]
        with self.results_lock:
            self.results.extend(local_results)

    def run(self):
        self.results = []
        # round-robin the geometries over the workers
        batches = [self.geometries[i::self.num_threads] for i in range(self.num_threads)]
        threads = []
        for batch in batches:
            if not batch:
                continue
            t = threading.Thread(target=self._worker, args=(batch,))
            t.start()
            threads.append(t)
        for t in threads:
            t.join()
        if len(self.results) != len(self.geometries):
            raise RuntimeError(f"sweep finished {len(self.results)} of {len(self.geometries)} geometries")

        self.results.sort(key=lambda r: (r["cache_size_bytes"], r["associativity"], r["set_index_bits"]))
        logger.info("sweep finished: %d geometries over %d records", len(self.results), len(self.records))
        return self.results

    def save_results(self, out_cfg):
        results_dir = out_cfg.get("results_dir", "results")
        os.makedirs(results_dir, exist_ok=True)
        path = os.path.join(results_dir, out_cfg.get("sweep_file", "sweep.json"))
        with open(path, "w") as f:
            json.dump({"num_records": len(self.records), "results": self.results}, f, indent=2)
        return path
