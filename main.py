# main.py
import argparse
import json
import logging
import os
import sys

from benchmark import SweepRunner, TraceGenerator
from cache import CacheConfig, ConfigurationError
from replay import TraceReplayer
from trace_reader import SourceUnavailableError, read_trace
from visualize import plot_miss_rate_sweep, plot_outcome_breakdown

logger = logging.getLogger("csim")

DEFAULT_GEOMETRIES = [
    {"set_index_bits": s, "block_offset_bits": 4, "associativity": e}
    for s in (2, 4, 6) for e in (1, 2, 4)
]


def load_config(path="config.json"):
    if path is None:
        return {}
    with open(path, "r") as f:
        return json.load(f)


def build_parser():
    parser = argparse.ArgumentParser(
        prog="csim",
        description="Simulate a set-associative LRU cache over a memory trace.",
    )
    parser.add_argument("-s", type=int, dest="set_index_bits", help="Number of set index bits (S = 2^s sets)")
    parser.add_argument("-E", type=int, dest="associativity", help="Number of lines per set")
    parser.add_argument("-b", type=int, dest="block_offset_bits", help="Number of block offset bits (B = 2^b bytes)")
    parser.add_argument("-t", dest="trace", help="Trace file to replay")
    parser.add_argument("-v", action="store_true", dest="verbose", help="Print the outcome of every access")
    parser.add_argument("--config", help="JSON configuration file; flags override its values")
    parser.add_argument("--plot", help="Write a hit/miss/eviction chart (or sweep chart) to this path")
    parser.add_argument("--sweep", action="store_true",
                        help="Replay a synthetic (or -t) trace under the configured geometries")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING)")
    return parser


def merge_args(cfg, args):
    cache_cfg = dict(cfg.get("cache") or {})
    for key in ("set_index_bits", "block_offset_bits", "associativity"):
        value = getattr(args, key)
        if value is not None:
            cache_cfg[key] = value
    trace_cfg = dict(cfg.get("trace") or {})
    if args.trace:
        trace_cfg["path"] = args.trace
    output_cfg = dict(cfg.get("output") or {})
    if args.plot:
        output_cfg["plot"] = args.plot
    return dict(cfg, cache=cache_cfg, trace=trace_cfg, output=output_cfg)


def print_summary(stats, out_cfg):
    print(f"hits:{stats.hits} misses:{stats.misses} evictions:{stats.evictions}")
    results_dir = out_cfg.get("results_dir", ".")
    os.makedirs(results_dir, exist_ok=True)
    path = os.path.join(results_dir, out_cfg.get("summary_file", ".csim_results"))
    with open(path, "w") as f:
        f.write(f"{stats.hits} {stats.misses} {stats.evictions}\n")
    return path


def run_trace(cfg, verbose=False):
    config = CacheConfig.from_dict(cfg["cache"]).validate()
    trace_path = cfg["trace"].get("path")
    if not trace_path:
        raise ConfigurationError("Missing required command-line argument: -t <tracefile>")
    records = read_trace(trace_path)
    replayer = TraceReplayer(config, verbose=print if verbose else None)
    report = replayer.run(records)
    logger.info("loads=%d stores=%d modifies=%d skipped=%d",
                report.loads, report.stores, report.modifies, report.skipped)
    print_summary(report.stats, cfg["output"])
    plot_path = cfg["output"].get("plot")
    if plot_path:
        plot_outcome_breakdown(report.stats, plot_path)
    return report


def run_sweep(cfg):
    bench_cfg = cfg.get("benchmark") or {}
    trace_path = cfg["trace"].get("path")
    if trace_path:
        records = read_trace(trace_path)
    else:
        records = TraceGenerator.from_config(bench_cfg).records(bench_cfg.get("num_records", 10000))
    runner = SweepRunner(records, bench_cfg.get("geometries", DEFAULT_GEOMETRIES),
                         num_threads=bench_cfg.get("num_threads", 4))
    print("Starting sweep over", len(runner.geometries), "geometries,", len(runner.records), "records")
    results = runner.run()
    for r in results:
        print(f"s={r['set_index_bits']} E={r['associativity']} b={r['block_offset_bits']} "
              f"hits:{r['hits']} misses:{r['misses']} evictions:{r['evictions']} "
              f"miss_rate:{r['miss_rate']:.4f}")
    results_path = runner.save_results(cfg["output"])
    print("Results saved to:", results_path)
    plot_path = cfg["output"].get("plot")
    if plot_path:
        plot_miss_rate_sweep(results, plot_path)
        print("Plot saved to:", plot_path)
    return results


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(),
                        format="%(asctime)s %(name)s %(levelname)s: %(message)s")
    try:
        cfg = merge_args(load_config(args.config), args)
    except (OSError, json.JSONDecodeError) as e:
        print(f"{parser.prog}: cannot load configuration: {e}", file=sys.stderr)
        return 1
    try:
        if args.sweep:
            run_sweep(cfg)
        else:
            run_trace(cfg, verbose=args.verbose)
    except (ConfigurationError, SourceUnavailableError) as e:
        print(f"{parser.prog}: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
