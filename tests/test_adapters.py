"""Tests for the SPIDAcalc and Katapult document walkers."""

import pytest

from polerecon.adapters import (
    PROPOSED_SUFFIX,
    SourceSchema,
    normalize,
    normalize_source_a,
    normalize_source_b,
)
from polerecon.config import config_from_dict
from polerecon.errors import MissingCollaboratorError
from polerecon.models import Kind, Layer


def _by_ref(records, layer):
    return {r.ref: r for r in records if r.layer is layer}


# ============================================================================
# SOURCE A
# ============================================================================

class TestSourceA:
    def test_layers_and_pole_id(self, spida_doc, warnings):
        records = normalize_source_a(spida_doc, warnings)
        assert {r.pole_id for r in records} == {"PL100"}
        assert {r.scid for r in records} == {"1-PL100"}
        assert {r.layer for r in records} == {Layer.SOURCE_A_BASELINE, Layer.SOURCE_A_PROPOSED}
        assert len(warnings) == 0

    def test_heights(self, spida_doc, warnings):
        base = _by_ref(normalize_source_a(spida_doc, warnings), Layer.SOURCE_A_BASELINE)
        assert base["CA1"].kind is Kind.CROSS_ARM
        assert base["CA1"].height_ft == 16.5
        assert base["I2"].height_ft == 30.0
        assert base["W3"].height_ft == 22.0
        # distanceToBottom is measured down from the pole top
        assert base["E1"].height_ft == 25.0
        assert base["G1"].height_ft == 10.0

    def test_arm_insulator_takes_arm_height(self, spida_doc, warnings):
        base = _by_ref(normalize_source_a(spida_doc, warnings), Layer.SOURCE_A_BASELINE)
        assert base["I1"].height_ft == 16.5
        assert base["I1"].parent_arm_ref == "CA1"
        assert base["I2"].parent_arm_ref is None

    def test_wires_inherit_insulator_height(self, spida_doc, warnings):
        base = _by_ref(normalize_source_a(spida_doc, warnings), Layer.SOURCE_A_BASELINE)
        assert base["W1"].height_ft == 16.5
        assert base["W1"].parent_ref == "I1"
        assert base["W2"].parent_ref == "I2"
        assert base["W3"].parent_ref is None

    def test_wires_are_emitted_once(self, spida_doc, warnings):
        records = normalize_source_a(spida_doc, warnings)
        base_refs = [r.ref for r in records if r.layer is Layer.SOURCE_A_BASELINE]
        assert base_refs.count("W1") == 1
        assert base_refs == ["CA1", "I1", "W1", "I2", "W2", "W3", "E1", "G1"]

    def test_proposed_design(self, spida_doc, warnings):
        proposed = _by_ref(normalize_source_a(spida_doc, warnings), Layer.SOURCE_A_PROPOSED)
        assert proposed["W3"].height_ft == 23.0

    def test_descriptions_and_owner(self, spida_doc, warnings):
        base = _by_ref(normalize_source_a(spida_doc, warnings), Layer.SOURCE_A_BASELINE)
        assert base["W1"].description == "336 ACSR - Full"
        assert base["W1"].subtype == "PRIMARY"
        assert base["E1"].description == "STREET_LIGHT - LED"
        assert base["E1"].owner == "City"
        assert base["I1"].subtype == "Pin"

    def test_missing_height_warns_and_uses_zero(self, spida_doc, warnings):
        structure = spida_doc["leads"][0]["locations"][0]["designs"][0]["structure"]
        del structure["wires"][2]["attachmentHeight"]
        base = _by_ref(normalize_source_a(spida_doc, warnings), Layer.SOURCE_A_BASELINE)
        assert base["W3"].height_ft == 0.0
        assert any("W3" in msg and "no height" in msg for msg in warnings)

    def test_dangling_wire_reference_warns(self, spida_doc, warnings):
        structure = spida_doc["leads"][0]["locations"][0]["designs"][0]["structure"]
        structure["insulators"][1]["wires"].append("W99")
        normalize_source_a(spida_doc, warnings)
        assert any("W99" in msg for msg in warnings)

    def test_implausible_height_warns_but_keeps_record(self, spida_doc, warnings):
        structure = spida_doc["leads"][0]["locations"][0]["designs"][0]["structure"]
        structure["wires"][2]["attachmentHeight"] = {"unit": "FOOT", "value": 60}
        base = _by_ref(normalize_source_a(spida_doc, warnings), Layer.SOURCE_A_BASELINE)
        assert base["W3"].height_ft == 60.0
        assert any("above pole top" in msg for msg in warnings)

    def test_metre_heights(self, warnings):
        doc = {"leads": [{"locations": [{"label": "PL7", "designs": [{"structure": {
            "wires": [{"id": "W", "attachmentHeight": {"unit": "METRE", "value": 9.144}}],
        }}]}]}]}
        records = normalize_source_a(doc, warnings)
        assert records[0].height_ft == pytest.approx(30.0)
        assert records[0].layer is Layer.SOURCE_A_BASELINE

    def test_unlabelled_location_is_skipped(self, warnings):
        doc = {"leads": [{"locations": [{"designs": [{"structure": {}}]}]}]}
        assert normalize_source_a(doc, warnings) == []
        assert len(warnings) == 1

    def test_empty_document(self, warnings):
        assert normalize_source_a({}, warnings) == []


# ============================================================================
# SOURCE B
# ============================================================================

class TestSourceB:
    def test_pole_identity(self, katapult_doc, warnings):
        records = normalize_source_b(katapult_doc, warnings)
        assert {r.pole_id for r in records} == {"PL100"}
        assert {r.scid for r in records} == {"1"}
        assert len(warnings) == 0

    def test_baseline_heights_in_feet(self, katapult_doc, warnings):
        base = _by_ref(normalize_source_b(katapult_doc, warnings), Layer.SOURCE_B_BASELINE)
        assert base["kw1"].height_ft == 16.5
        assert base["kw2"].height_ft == 30.0
        assert base["ke1"].height_ft == 25.0
        assert base["kg1"].height_ft == 10.0

    def test_guys_from_wire_and_guying_sections(self, katapult_doc, warnings):
        base = _by_ref(normalize_source_b(katapult_doc, warnings), Layer.SOURCE_B_BASELINE)
        assert base["kw4"].kind is Kind.GUY
        assert base["kw4"].description == "down_guy [wire]"
        assert base["kg1"].kind is Kind.GUY
        assert base["kg1"].description == "down [guying]"
        assert base["kg1"].subtype == "down_guy"

    def test_proposed_layer_applies_mr_move(self, katapult_doc, warnings):
        proposed = _by_ref(normalize_source_b(katapult_doc, warnings), Layer.SOURCE_B_PROPOSED)
        assert proposed["kw3" + PROPOSED_SUFFIX].height_ft == 23.0
        assert proposed["kw1" + PROPOSED_SUFFIX].height_ft == 16.5

    def test_proposed_trace_is_proposed_only(self, katapult_doc, warnings):
        records = normalize_source_b(katapult_doc, warnings)
        kw5 = [r for r in records if r.ref.startswith("kw5")]
        assert len(kw5) == 1
        assert kw5[0].layer is Layer.SOURCE_B_PROPOSED
        assert kw5[0].ref == "kw5"
        assert kw5[0].height_ft == 20.0

    def test_wire_description_and_owner_from_trace(self, katapult_doc, warnings):
        base = _by_ref(normalize_source_b(katapult_doc, warnings), Layer.SOURCE_B_BASELINE)
        assert base["kw3"].description == "Charter Fiber"
        assert base["kw3"].owner == "Charter"
        assert base["kw3"].subtype == "Communication"
        assert base["ke1"].description == "Street light"

    def test_alternate_design_moves(self, katapult_doc, warnings):
        del katapult_doc["photos"]["p1"]["photofirst_data"]["wire"]["kw3"]["mr_move"]
        katapult_doc["alternate_designs"] = {"designs": {"d1": {"data": {"photo": {
            "photofirst_data": {"wire": {"kw3": {"mr_move": -24}}},
        }}}}}
        proposed = _by_ref(normalize_source_b(katapult_doc, warnings), Layer.SOURCE_B_PROPOSED)
        assert proposed["kw3" + PROPOSED_SUFFIX].height_ft == 20.0

    def test_missing_trace_warns(self, katapult_doc, warnings):
        del katapult_doc["traces"]["trace_data"]["t2"]
        records = normalize_source_b(katapult_doc, warnings)
        assert any("kw2" in msg and "trace" in msg for msg in warnings)
        assert any(r.ref == "kw2" for r in records)

    def test_missing_height_warns(self, katapult_doc, warnings):
        del katapult_doc["photos"]["p1"]["photofirst_data"]["wire"]["kw2"]["_measured_height"]
        base = _by_ref(normalize_source_b(katapult_doc, warnings), Layer.SOURCE_B_BASELINE)
        assert base["kw2"].height_ft == 0.0
        assert any("kw2" in msg and "no measured height" in msg for msg in warnings)

    def test_non_pole_nodes_are_skipped(self, katapult_doc, warnings):
        katapult_doc["nodes"]["n1"]["attributes"]["node_type"] = {"-Imported": "reference"}
        assert normalize_source_b(katapult_doc, warnings) == []

    def test_pole_node_types_come_from_config(self, katapult_doc, warnings):
        katapult_doc["nodes"]["n1"]["attributes"]["node_type"] = {"-Imported": "stub"}
        config = config_from_dict({"pole_node_types": ["stub"]})
        assert normalize_source_b(katapult_doc, warnings, config)

    def test_dloc_number_fallback(self, katapult_doc, warnings):
        attrs = katapult_doc["nodes"]["n1"]["attributes"]
        del attrs["pole_tag"]
        attrs["DLOC_number"] = {"-Imported": "555"}
        records = normalize_source_b(katapult_doc, warnings)
        assert {r.pole_id for r in records} == {"PL555"}

    def test_legacy_heights(self, warnings):
        doc = {"nodes": {"n": {
            "attributes": {"pole_tag": {"x": {"tagtext": "PL9"}}},
            "heights": {
                "h1": {"height_ft": 30, "height_in": 6, "type": "Neutral", "company": "CPS"},
                "h2": {"height_ft": 12, "type": "Down Guy"},
            },
        }}}
        base = _by_ref(normalize_source_b(doc, warnings), Layer.SOURCE_B_BASELINE)
        assert base["h1"].height_ft == 30.5
        assert base["h1"].kind is Kind.WIRE
        assert base["h2"].kind is Kind.GUY


def test_normalize_dispatches_on_schema(spida_doc, katapult_doc, warnings):
    assert normalize(spida_doc, "spida", warnings) == normalize_source_a(spida_doc, warnings)
    assert normalize(katapult_doc, SourceSchema.SOURCE_B, warnings) == normalize_source_b(katapult_doc, warnings)


def test_normalize_requires_a_collector(spida_doc):
    with pytest.raises(MissingCollaboratorError):
        normalize(spida_doc, SourceSchema.SOURCE_A, None)
    with pytest.raises(TypeError):
        normalize_source_b({}, None)
