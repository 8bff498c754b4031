from __future__ import annotations

import json

import pytest

from rfs.cli import build_parser, main


def _base(server):
    host, port = server.address
    return ["--host", host, "--port", str(port)]


def test_write_get_rm(server, tmp_path, capsys):
    src = tmp_path / "local.txt"
    dst = tmp_path / "copy.txt"
    src.write_bytes(b"hello over the wire\n")

    assert main(_base(server) + ["WRITE", str(src), "docs/hello.txt"]) == 0
    assert "Server says: OK" in capsys.readouterr().out

    assert main(_base(server) + ["GET", "docs/hello.txt", str(dst)]) == 0
    assert dst.read_bytes() == src.read_bytes()
    assert f"Got the file: {dst}" in capsys.readouterr().out

    assert main(_base(server) + ["RM", "docs/hello.txt"]) == 0
    assert "deleted" in capsys.readouterr().out


def test_read_only_write_exits_1(server, tmp_path, capsys):
    src = tmp_path / "local.txt"
    src.write_bytes(b"v1")
    assert main(_base(server) + ["WRITE", str(src), "ro.txt", "R"]) == 0
    assert main(_base(server) + ["WRITE", str(src), "ro.txt"]) == 1
    assert "read-only" in capsys.readouterr().out
    assert main(_base(server) + ["RM", "ro.txt"]) == 1


def test_get_missing_exits_1(server, tmp_path, capsys):
    out = tmp_path / "out"
    out.write_bytes(b"keep me")
    assert main(_base(server) + ["GET", "nope.txt", str(out)]) == 1
    assert "not found" in capsys.readouterr().err
    assert out.read_bytes() == b"keep me"


def test_missing_local_file_exits_1(server, tmp_path, capsys):
    assert main(_base(server) + ["WRITE", str(tmp_path / "absent"), "x.txt"]) == 1
    assert capsys.readouterr().err.startswith("rfs: ")


def test_connection_refused_exits_1(tmp_path):
    src = tmp_path / "local.txt"
    src.write_bytes(b"x")
    # port 1 is never an rfs server
    assert main(["--port", "1", "WRITE", str(src), "x.txt"]) == 1


@pytest.mark.parametrize("argv", [[], ["WRITE", "only-local"], ["GET", "a"], ["LIST", "a"], ["RM"]])
def test_usage_errors_exit_1(argv):
    with pytest.raises(SystemExit) as exc:
        main(argv)
    assert exc.value.code == 1


def test_permission_argument_defaults():
    args = build_parser().parse_args(["WRITE", "a", "b"])
    assert args.permission == "W"
    args = build_parser().parse_args(["serve", "--lock-mode", "path", "--max-workers", "4"])
    assert (args.lock_mode, args.max_workers, args.root) == ("path", 4, "server_root")


def test_bench_json(capsys):
    assert main(["bench", "--clients", "3", "--size-bytes", "5000", "--lock-mode", "path", "--json"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["role"] == "bench"
    assert out["clients"] == 3
    assert out["mismatches"] == 0
    assert out["bytes_transferred"] == 2 * 3 * 5000
