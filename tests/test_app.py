import io
import json

import pytest

from patientbeacon.app import main


@pytest.fixture
def directory(tmp_path):
    path = tmp_path / "dir.json"
    path.write_text(
        json.dumps({"Users": [{"NAME": "Alice", "ID": "7", "UUID": "uuid-1",
                               "LOCATION": "Ward", "TIMESTAMP": "t0"}]}),
        encoding="utf-8",
    )
    return path


def test_prints_patient_for_known_uuid(directory, monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO("uuid-1\n\nunknown\n"))
    status = main(["--ip", "10.0.0.1", "--directory", str(directory), "--offline"])
    assert status == 0
    assert capsys.readouterr().out.splitlines() == ["{Alice 7 uuid-1 Ward t0}"]


def test_unknown_uuid_prints_nothing(directory, monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO("unknown\n"))
    status = main(["--ip", "10.0.0.1", "--directory", str(directory), "--offline"])
    assert status == 0
    assert capsys.readouterr().out == ""


def test_bad_option_exits():
    with pytest.raises(SystemExit):
        main(["--bogus"])