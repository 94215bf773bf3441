import json

from kinetic_engine import run
from kinetic_engine.config import config

from tests.synthetic import jump_recording


def test_assessment_written_to_file(tmp_path):
    recording = tmp_path / "jump.json"
    recording.write_text(jump_recording().model_dump_json())
    output = tmp_path / "assessment.json"

    code = run.main([str(recording), "--athlete-id", "athlete-1", "--output", str(output)])

    assert code == 0
    assessment = json.loads(output.read_text())
    assert assessment["athleteId"] == "athlete-1"
    assert assessment["performanceMetrics"]["testType"] == "vertical-jump"
    assert assessment["proofChain"]["previousHash"] is None


def test_previous_hash_passed_through(tmp_path, capsys):
    recording = tmp_path / "jump.json"
    recording.write_text(jump_recording().model_dump_json())

    code = run.main([str(recording), "--athlete-id", "athlete-1", "--previous-hash", "ab" * 32])

    assert code == 0
    assessment = json.loads(capsys.readouterr().out)
    assert assessment["proofChain"]["previousHash"] == "ab" * 32


def test_rejected_recording(tmp_path, capsys):
    recording = tmp_path / "empty.json"
    recording.write_text(json.dumps({"testType": "squat", "declaredDurationSeconds": 5, "frames": []}))

    code = run.main([str(recording), "--athlete-id", "athlete-1"])

    assert code == 2
    assert "analysis failed, please retry" in capsys.readouterr().err


def test_unreadable_file(tmp_path):
    assert run.main([str(tmp_path / "missing.json"), "--athlete-id", "athlete-1"]) == 1


def teardown_module():
    # main() configures the shared config instance
    config.output_path = None
    config.previous_hash = None
