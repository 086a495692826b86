import pytest


@pytest.fixture(autouse=True)
def _match_log_dir(tmp_path, monkeypatch):
    # 試合ログはテストごとの一時ディレクトリへ
    monkeypatch.setenv("HEXTACTICS_LOG_DIR", str(tmp_path / "logs"))
