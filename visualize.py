# visualize.py
import os
import matplotlib.pyplot as plt


def _ensure_dir(outpath):
    dirname = os.path.dirname(outpath)
    if dirname:
        os.makedirs(dirname, exist_ok=True)


def plot_outcome_breakdown(stats, outpath, title="Cache Hits / Misses / Evictions"):
    _ensure_dir(outpath)
    plt.figure(figsize=(5,4))
    labels = ['Hits', 'Misses', 'Evictions']
    values = [stats.hits, stats.misses, stats.evictions]
    bars = plt.bar(labels, values, color=['tab:green', 'tab:orange', 'tab:red'])
    for bar, value in zip(bars, values):
        plt.annotate(str(value), (bar.get_x() + bar.get_width() / 2, bar.get_height()),
                     ha='center', va='bottom')
    plt.title(title)
    plt.ylabel("Count")
    plt.tight_layout()
    plt.savefig(outpath)
    plt.close()
    return outpath


def plot_miss_rate_sweep(results, outpath):
    _ensure_dir(outpath)
    # one line per associativity, x = total cache size
    plt.figure(figsize=(8,4))
    for ways in sorted({r["associativity"] for r in results}):
        rows = sorted((r for r in results if r["associativity"] == ways),
                      key=lambda r: r["cache_size_bytes"])
        plt.plot([r["cache_size_bytes"] for r in rows], [r["miss_rate"] for r in rows],
                 marker='o', label=f"E={ways}")
    plt.xscale('log', base=2)
    plt.title("Miss Rate vs Cache Size")
    plt.xlabel("Cache size (bytes)")
    plt.ylabel("Miss rate")
    plt.grid(True)
    plt.legend()
    plt.tight_layout()
    plt.savefig(outpath)
    plt.close()
    return outpath
