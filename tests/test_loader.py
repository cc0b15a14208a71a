import json

import pytest

from stepgraph.errors import DataLoadError
from stepgraph.loader import (
    RetryPolicy,
    case_study_from_records,
    load_bundled_case_study,
    load_case_study,
    load_json_records,
)


def test_bundled_case_study_shape():
    study = load_bundled_case_study()
    assert study.name == "bell_labs"
    assert len(study.nodes) == 25
    assert len(study.edges) == 11
    assert [s.id for s in study.steps] == [0, 1, 2, 6]
    edge = study.edge(19)
    assert edge.from_nodes == (4,)
    assert edge.to_nodes == (6, 7)
    assert edge.violated


def test_load_case_study_from_directory(data_dir, no_sleep):
    study = load_case_study(data_dir, sleep=no_sleep)
    assert [n.id for n in study.nodes] == [1, 2, 3, 4, 5]
    assert [s.id for s in study.steps] == [1, 2]
    assert no_sleep.delays == []


def test_retry_uses_exponential_backoff(tmp_path, no_sleep):
    records = load_json_records(
        tmp_path / "missing.json",
        RetryPolicy(attempts=3, base_delay=1.0, backoff=2.0),
        sleep=no_sleep,
    )
    assert records == []
    assert no_sleep.delays == [1.0, 2.0]


def test_retry_recovers_when_file_appears(tmp_path):
    path = tmp_path / "nodes.json"
    calls = []

    def sleep(seconds):
        calls.append(seconds)
        path.write_text(json.dumps([{"node_id": 1, "node_name": "Late"}]), encoding="utf-8")

    records = load_json_records(path, RetryPolicy(attempts=3, base_delay=0.5), sleep=sleep)
    assert records == [{"node_id": 1, "node_name": "Late"}]
    assert calls == [0.5]


def test_invalid_json_is_retried_then_empty(tmp_path, no_sleep):
    path = tmp_path / "edges.json"
    path.write_text("[{not json", encoding="utf-8")
    assert load_json_records(path, RetryPolicy(attempts=2), sleep=no_sleep) == []
    assert len(no_sleep.delays) == 1


def test_non_list_payload_becomes_empty(tmp_path, no_sleep):
    path = tmp_path / "steps.json"
    path.write_text(json.dumps({"step_id": 1}), encoding="utf-8")
    assert load_json_records(path, sleep=no_sleep) == []


def test_empty_directory_falls_back_to_bundled(tmp_path, no_sleep):
    study = load_case_study(tmp_path, RetryPolicy(attempts=1), sleep=no_sleep)
    assert study.name == "bell_labs"
    assert len(study.nodes) == 25


def test_empty_directory_without_fallback(tmp_path, no_sleep):
    study = load_case_study(tmp_path, RetryPolicy(attempts=1), sleep=no_sleep, fallback=False)
    assert study.nodes == []


def test_bad_records_are_skipped(small_records):
    small_records["edges"].append({"interaction_id": 99, "from_nodes": [], "to_nodes": [1]})
    small_records["nodes"].append({"node_name": "No id"})
    study = case_study_from_records(small_records["nodes"], small_records["edges"], small_records["steps"])
    assert len(study.nodes) == 5
    assert study.edge(99) is None


def test_documents_are_optional_and_linked(data_dir, small_records, no_sleep):
    small_records["steps"][0]["document_ids"] = [1]
    (data_dir / "steps.json").write_text(json.dumps(small_records["steps"]), encoding="utf-8")
    (data_dir / "documents.json").write_text(
        json.dumps([{"document_id": 1, "tldr": "Memo", "author": "Kelly"}]), encoding="utf-8"
    )
    study = load_case_study(data_dir, sleep=no_sleep)
    assert [d.tldr for d in study.documents_for_step(2)] == ["Memo"]


def test_retry_policy_validation():
    with pytest.raises(ValueError):
        RetryPolicy(attempts=0)
    with pytest.raises(ValueError):
        RetryPolicy(backoff=0.5)
    assert RetryPolicy(base_delay=1.0, backoff=3.0).delay(3) == 9.0


def test_data_load_error_message():
    error = DataLoadError("nodes.json", 3, OSError("gone"))
    assert "nodes.json" in str(error)
    assert "3 attempt" in str(error)
    assert error.cause.args == ("gone",)
