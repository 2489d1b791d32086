from cache import CacheStats
from visualize import plot_miss_rate_sweep, plot_outcome_breakdown


def test_plot_outcome_breakdown(tmp_path):
    outpath = tmp_path / "plots" / "outcomes.png"
    result = plot_outcome_breakdown(CacheStats(9, 8, 6), str(outpath))
    assert result == str(outpath)
    assert outpath.stat().st_size > 0


def test_plot_miss_rate_sweep(tmp_path):
    results = [
        {"associativity": 1, "cache_size_bytes": 64, "miss_rate": 0.5},
        {"associativity": 1, "cache_size_bytes": 256, "miss_rate": 0.3},
        {"associativity": 2, "cache_size_bytes": 128, "miss_rate": 0.35},
        {"associativity": 2, "cache_size_bytes": 512, "miss_rate": 0.1},
    ]
    outpath = tmp_path / "sweep.png"
    plot_miss_rate_sweep(results, str(outpath))
    assert outpath.stat().st_size > 0
