"""Shared test fixtures for stepgraph tests."""

import json

import pytest

from stepgraph.loader import case_study_from_records, load_bundled_case_study
from stepgraph.models import Position


@pytest.fixture()
def bell():
    """The bundled Bell Labs case study (25 nodes, 11 edges, steps 0, 1, 2, 6)."""
    return load_bundled_case_study()


@pytest.fixture()
def small_records():
    """Two roots with a parent and a child each, a parallel pair and a self loop."""
    return {
        "nodes": [
            {"node_id": 1, "node_name": "North", "node_description": "Head office"},
            {"node_id": 2, "node_name": "South", "node_description": ""},
            {"node_id": 3, "node_name": "Lab", "node_parent_id": 1},
            {"node_id": 4, "node_name": "Engineer", "node_parent_id": 3, "node_grandparent_id": 1},
            {"node_id": 5, "node_name": "Depot", "node_parent_id": 2},
        ],
        "edges": [
            {"interaction_id": 10, "from_nodes": [1], "to_nodes": [2], "step_id": 1,
             "interaction_description": "Contract"},
            {"interaction_id": 11, "from_nodes": [2], "to_nodes": [1], "step_id": 1,
             "interaction_description": "Payment"},
            {"interaction_id": 12, "from_nodes": [3], "to_nodes": [3], "step_id": 2,
             "interaction_description": "Internal review", "violated": 1},
            {"interaction_id": 13, "from_nodes": [4], "to_nodes": [5], "step_id": 2,
             "interaction_description": "Shipment", "unused": 1, "bidirectional": 1},
        ],
        "steps": [
            {"step_id": 2, "step_description": "Delivery", "date": "1950", "phase": "build"},
            {"step_id": 1, "step_description": "Negotiation", "date": "1949", "phase": "plan"},
        ],
    }


@pytest.fixture()
def small(small_records):
    return case_study_from_records(
        small_records["nodes"], small_records["edges"], small_records["steps"], name="small"
    )


@pytest.fixture()
def small_positions():
    """Hand-placed positions: 1 and 2 on the x axis, 3 above 1, 4 and 5 far away."""
    return {
        1: Position(0.0, 0.0),
        2: Position(200.0, 0.0),
        3: Position(0.0, -200.0),
        4: Position(-300.0, 300.0),
        5: Position(300.0, 300.0),
    }


@pytest.fixture()
def data_dir(tmp_path, small_records):
    """A case study directory written from ``small_records``."""
    for name in ("nodes", "edges", "steps"):
        (tmp_path / f"{name}.json").write_text(json.dumps(small_records[name]), encoding="utf-8")
    return tmp_path


@pytest.fixture()
def no_sleep():
    """A sleep replacement that records requested delays."""
    delays = []

    def _sleep(seconds):
        delays.append(seconds)

    _sleep.delays = delays
    return _sleep
