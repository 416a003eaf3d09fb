"""Smoke tests for ``python -m grid_swarm``."""

from grid_swarm.__main__ import main


def test_offline_cycles_print_the_narrative(monkeypatch, tmp_path, capsys):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.setenv("GRID_SWARM_OFFLINE_LATENCY_S", "0")

    assert main(["--cycles", "5", "--no-noise", "--log-root", str(tmp_path)]) == 0

    out = capsys.readouterr().out
    assert "== status: IDLE" in out
    assert "== status: RUNNING" not in out
    assert "WX_NOMINAL" in out
    assert "OPPORTUNISTIC" in out
    assert "SYS->KERNEL" not in out
    assert list((tmp_path / "logs_running").glob("*_cli.log"))
    assert list((tmp_path / "logs_llm_direct").glob("*_cli.jsonl"))


def test_knowledge_files_are_loaded(monkeypatch, tmp_path, capsys):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.setenv("GRID_SWARM_OFFLINE_LATENCY_S", "0")
    doc = tmp_path / "runbook.txt"
    doc.write_text("Shed order: C, B, A", encoding="utf-8")

    code = main(["--cycles", "1", "--no-noise", "--knowledge", str(doc), "--log-root", str(tmp_path)])

    assert code == 0
    records = (next((tmp_path / "logs_llm_direct").glob("*.jsonl"))).read_text(encoding="utf-8")
    assert "Shed order: C, B, A" in records
