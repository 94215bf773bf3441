import pytest

from kinetic_engine.config import Config


class TestConfig:
    def test_copy_with_overrides(self):
        base = Config()
        relaxed = base.copy_with(min_confidence=0.1)
        assert relaxed.min_confidence == 0.1
        assert base.min_confidence == 0.3

    def test_copy_with_unknown_option(self):
        with pytest.raises(AttributeError):
            Config().copy_with(min_confidance=0.1)

    def test_enabled_checks(self):
        cfg = Config().copy_with(check_replay=False)
        assert cfg.enabled_checks == ["low_confidence", "implausible_metric", "duration_mismatch"]

    def test_setup_from_args(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        cfg = Config()
        cfg.setup_from_args(["rec.json", "--athlete-id", "a1", "--mode", "debug"])

        assert cfg.athlete_id == "a1"
        assert cfg.save_reports
        assert (tmp_path / "debug_reports").is_dir()
        assert cfg.mode_description == "Debug Mode (with report saving)"

    def test_athlete_id_required(self):
        with pytest.raises(SystemExit):
            Config().setup_from_args(["rec.json"])
