import json

import pytest

from apostles.cli.main import main, parse_args
from apostles.core.encoders.compact_encoder import CompactArrayEncoder


RESPONDENTS = """\
{"id": "r1", "name": "Acme", "satisfaction": 5, "loyalty": 5}
{"id": "r2", "satisfaction": 4, "loyalty": 5}
{"id": "r3", "satisfaction": 3, "loyalty": 3}
{"id": "r4", "satisfaction": 1, "loyalty": 2}
"""


@pytest.fixture
def respondents_file(tmp_path):
    path = tmp_path / "respondents.jsonl"
    path.write_text(RESPONDENTS)
    return path


def test_parse_args():
    args = parse_args(["-v", "proximity", "data.jsonl", "--threshold", "1.5", "--premium"])

    assert args.verbose is True
    assert args.command == "proximity"
    assert args.threshold == pytest.approx(1.5)
    assert args.premium is True


def test_segment_command(respondents_file, tmp_path):
    rules = tmp_path / "rules.yaml"
    rules.write_text("segmentation:\n  show_special_zones: true\n")
    overrides = tmp_path / "overrides.json"
    overrides.write_text('{"r4": "hostages"}')
    output = tmp_path / "segments.json"

    main([
        "segment", str(respondents_file),
        "--rules", str(rules),
        "--overrides", str(overrides),
        "-o", str(output),
    ])

    data = json.loads(output.read_text())
    assert data["assignments"] == {
        "r1": "apostles",
        "r2": "loyalists",
        "r3": "loyalists",
        "r4": "hostages",
    }
    assert data["overridden"] == ["r4"]
    assert data["distribution"]["counts"]["loyalists"] == 2
    assert "proximity" not in data


def test_proximity_command(respondents_file, tmp_path):
    output = tmp_path / "proximity.json"

    main(["proximity", str(respondents_file), "--premium", "-o", str(output)])

    data = json.loads(output.read_text())
    assert data["settings"]["isAvailable"] is True
    assert data["settings"]["premiumEnabled"] is True
    assert data["analysis"]["loyalists_close_to_defectors"]["customerCount"] == 1
    assert data["summary"]["totalCustomers"] == 4


def test_proximity_command_unavailable_scale(respondents_file, tmp_path):
    rules = tmp_path / "rules.json"
    rules.write_text(json.dumps({"segmentation": {"satisfaction_scale": "1-3"}}))
    output = tmp_path / "proximity.json"

    main(["proximity", str(respondents_file), "--rules", str(rules), "-o", str(output)])

    data = json.loads(output.read_text())
    assert data["settings"]["isAvailable"] is False
    assert data["settings"]["unavailabilityReason"]


def test_compact_encoder_keeps_flat_records_inline():
    text = CompactArrayEncoder().encode({
        "rows": [{"id": "r1", "targets": ["hostages"]}, {"id": "r2", "targets": []}],
        "empty": {},
    })

    assert '{"id": "r1", "targets": ["hostages"]}' in text
    assert '"empty": {}' in text
    assert json.loads(text)["rows"][1]["targets"] == []
