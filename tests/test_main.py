import json

import pytest

from main import load_config, main

YI_TRACE = " L 10,1\n M 20,1\n L 22,1\n S 18,1\n L 110,1\n L 210,1\n M 12,1\n"


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "yi.trace").write_text(YI_TRACE)
    return tmp_path


def test_replay_prints_summary_and_writes_results(workdir, capsys):
    assert main(["-s", "4", "-E", "2", "-b", "4", "-t", "yi.trace"]) == 0
    out = capsys.readouterr().out
    assert out == "hits:4 misses:5 evictions:2\n"
    assert (workdir / ".csim_results").read_text() == "4 5 2\n"


def test_verbose_output(workdir, capsys):
    assert main(["-s", "1", "-E", "1", "-b", "1", "-t", "yi.trace", "-v"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == "L 10,1 miss"
    assert lines[1] == "M 20,1 miss eviction hit"
    assert lines[-1] == "hits:2 misses:7 evictions:5"


def test_missing_trace_file(workdir, capsys):
    assert main(["-s", "1", "-E", "1", "-b", "1", "-t", "nope.trace"]) == 1
    captured = capsys.readouterr()
    assert "cannot open trace file" in captured.err
    assert "hits:" not in captured.out


def test_missing_trace_argument(workdir, capsys):
    assert main(["-s", "1", "-E", "1", "-b", "1"]) == 1
    assert "Missing required command-line argument" in capsys.readouterr().err


def test_invalid_geometry(workdir, capsys):
    assert main(["-s", "1", "-E", "0", "-b", "1", "-t", "yi.trace"]) == 1
    assert "associativity" in capsys.readouterr().err
    assert not (workdir / ".csim_results").exists()


def test_config_file_with_flag_override(workdir, capsys):
    cfg = {
        "cache": {"set_index_bits": 4, "block_offset_bits": 4, "associativity": 1},
        "trace": {"path": "yi.trace"},
        "output": {"results_dir": "results", "plot": "results/outcomes.png"},
    }
    (workdir / "config.json").write_text(json.dumps(cfg))
    assert main(["--config", "config.json", "-E", "2"]) == 0
    assert capsys.readouterr().out == "hits:4 misses:5 evictions:2\n"
    assert (workdir / "results" / ".csim_results").read_text() == "4 5 2\n"
    assert (workdir / "results" / "outcomes.png").exists()


def test_unreadable_config(workdir, capsys):
    (workdir / "bad.json").write_text("{not json")
    assert main(["--config", "bad.json"]) == 1
    assert "cannot load configuration" in capsys.readouterr().err


def test_sweep_mode(workdir, capsys):
    cfg = {
        "output": {"results_dir": "results", "plot": "results/sweep.png"},
        "benchmark": {
            "num_records": 500,
            "random_seed": 1,
            "num_threads": 2,
            "geometries": [
                {"set_index_bits": 2, "block_offset_bits": 4, "associativity": 1},
                {"set_index_bits": 4, "block_offset_bits": 4, "associativity": 2},
            ],
        },
    }
    (workdir / "config.json").write_text(json.dumps(cfg))
    assert main(["--config", "config.json", "--sweep"]) == 0
    out = capsys.readouterr().out
    assert "Starting sweep over 2 geometries, 500 records" in out
    saved = json.loads((workdir / "results" / "sweep.json").read_text())
    assert len(saved["results"]) == 2
    assert (workdir / "results" / "sweep.png").exists()


def test_sweep_over_trace_file(workdir, capsys):
    assert main(["--sweep", "-t", "yi.trace"]) == 0
    saved = json.loads((workdir / "results" / "sweep.json").read_text())
    assert len(saved["results"]) == 9


def test_load_config_none():
    assert load_config(None) == {}


def test_undecodable_trace_line_is_skipped(workdir, capsys):
    (workdir / "bin.trace").write_bytes(b" L 0,1\n\xff\xfe junk\n L 0,1\n")
    assert main(["-s", "1", "-E", "1", "-b", "0", "-t", "bin.trace"]) == 0
    assert capsys.readouterr().out == "hits:1 misses:1 evictions:0\n"


@pytest.mark.parametrize("section", ["cache", "trace", "output", "benchmark"])
def test_null_config_sections(workdir, capsys, section):
    cfg = {
        "cache": {"set_index_bits": 4, "block_offset_bits": 4, "associativity": 2},
        "trace": {"path": "yi.trace"},
        "output": {"results_dir": "."},
        "benchmark": {},
    }
    cfg[section] = None
    (workdir / "c.json").write_text(json.dumps(cfg))
    argv = ["--config", "c.json", "-s", "4", "-E", "2", "-b", "4", "-t", "yi.trace"]
    assert main(argv) == 0
    assert "hits:4 misses:5 evictions:2" in capsys.readouterr().out
