"""
Shared pytest fixtures for polerecon tests.

The two documents describe the same pole, PL100, once as a SPIDAcalc
export and once as a Katapult job, with heights in feet/inches so expected
values are exact.
"""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any, Callable, Dict

import pytest

from polerecon.diagnostics import WarningCollector
from polerecon.models import AttachmentRecord, Kind, Layer


def _ft(value: float) -> Dict[str, Any]:
    return {"unit": "FOOT", "value": value}


# ============================================================================
# SOURCE A (SPIDAcalc)
# ============================================================================

def _measured_structure() -> Dict[str, Any]:
    return {
        "pole": {"agl": _ft(40.0)},
        "crossArms": [
            {
                "id": "CA1",
                "attachmentHeight": _ft(16.5),
                "insulators": ["I1"],
                "owner": {"id": "CPS Energy"},
                "clientItem": {"size": "8 ft Arm"},
            },
        ],
        "insulators": [
            {
                "id": "I1",
                "offset": _ft(0.3),
                "wires": ["W1"],
                "owner": {"id": "CPS Energy"},
                "clientItem": {"size": "Pin"},
            },
            {
                "id": "I2",
                "offset": _ft(30.0),
                "wires": ["W2"],
                "owner": {"id": "CPS Energy"},
                "clientItem": {"size": "Deadend"},
            },
        ],
        "wires": [
            {
                "id": "W1",
                "usageGroup": "PRIMARY",
                "owner": {"id": "CPS Energy"},
                "clientItem": {"size": "336 ACSR"},
                "tensionGroup": "Full",
                "attachmentHeight": _ft(99.0),
            },
            {
                "id": "W2",
                "usageGroup": "NEUTRAL",
                "owner": {"id": "CPS Energy"},
                "clientItem": {"size": "1/0 ACSR"},
                "tensionGroup": "Full",
            },
            {
                "id": "W3",
                "usageGroup": "COMMUNICATION",
                "owner": {"id": "Charter"},
                "clientItem": {"size": "Fiber"},
                "tensionGroup": "Slack",
                "attachmentHeight": _ft(22.0),
            },
        ],
        "equipments": [
            {
                "id": "E1",
                "distanceToBottom": _ft(15.0),
                "owner": {"id": "City"},
                "clientItem": {"type": "STREET_LIGHT", "size": "LED"},
            },
        ],
        "guys": [
            {"id": "G1", "attachmentHeight": {"unit": "INCH", "value": 120}, "owner": {"id": "CPS Energy"}},
        ],
    }


def make_spida_doc() -> Dict[str, Any]:
    measured = _measured_structure()
    recommended = copy.deepcopy(measured)
    recommended["wires"][2]["attachmentHeight"] = _ft(23.0)
    return {
        "leads": [
            {
                "locations": [
                    {
                        "label": "1-PL100",
                        "designs": [
                            {"layerType": "Measured", "structure": measured},
                            {"layerType": "Recommended", "structure": recommended},
                        ],
                    },
                ],
            },
        ],
    }


# ============================================================================
# SOURCE B (Katapult)
# ============================================================================

def make_katapult_doc() -> Dict[str, Any]:
    return {
        "nodes": {
            "n1": {
                "attributes": {
                    "node_type": {"-Imported": "pole"},
                    "scid": {"-Imported": "1"},
                    "pole_tag": {"-Imported": {"tagtext": "PL100"}},
                },
                "photos": {"p1": {"association": "main"}},
            },
        },
        "photos": {
            "p1": {
                "photofirst_data": {
                    "pole_top": {"pt": {"_measured_height": 480}},
                    "wire": {
                        "kw1": {"_measured_height": 198, "_trace": "t1"},
                        "kw2": {"_measured_height": 360, "_trace": "t2"},
                        "kw3": {"_measured_height": 264, "_trace": "t3", "mr_move": 12},
                        "kw4": {"_measured_height": 121, "_trace": "t4"},
                        "kw5": {"_measured_height": 240, "_trace": "t7"},
                    },
                    "equipment": {
                        "ke1": {"_measured_height": 300, "_trace": "t5", "equipment_type": "street_light"},
                    },
                    "guying": {
                        "kg1": {"_measured_height": 120, "_trace": "t6", "guy_type": "down"},
                    },
                },
            },
        },
        "traces": {
            "trace_data": {
                "t1": {"company": "CPS Energy", "cable_type": "Primary", "label": "Primary"},
                "t2": {"company": "CPS Energy", "cable_type": "Neutral"},
                "t3": {"company": "Charter", "cable_type": "Communication", "label": "Charter Fiber"},
                "t4": {"company": "CPS Energy", "_trace_type": "down_guy"},
                "t5": {"company": "City", "_trace_type": "equipment"},
                "t6": {"company": "CPS Energy", "_trace_type": "down_guy"},
                "t7": {"company": "AT&T", "cable_type": "Telco Com", "proposed": True},
            },
        },
    }


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def spida_doc() -> Dict[str, Any]:
    return make_spida_doc()


@pytest.fixture
def katapult_doc() -> Dict[str, Any]:
    return make_katapult_doc()


@pytest.fixture
def warnings() -> WarningCollector:
    return WarningCollector()


@pytest.fixture
def write_json(tmp_path: Path) -> Callable[[str, Any], Path]:
    """Write *data* as JSON under tmp_path and return the file path."""
    def _write(name: str, data: Any) -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(data), encoding="utf-8")
        return path
    return _write


@pytest.fixture
def make_record() -> Callable[..., AttachmentRecord]:
    """Factory for AttachmentRecords with sensible defaults."""
    counter = {"n": 0}

    def _make(kind: Kind = Kind.WIRE, height_ft: float = 30.0,
              layer: Layer = Layer.SOURCE_A_BASELINE, **kwargs: Any) -> AttachmentRecord:
        counter["n"] += 1
        fields = {
            "pole_id": "PL100",
            "layer": layer,
            "kind": kind,
            "description": f"{kind.value} {counter['n']}",
            "height_ft": height_ft,
            "ref": f"r{counter['n']}",
        }
        fields.update(kwargs)
        return AttachmentRecord(**fields)

    return _make
