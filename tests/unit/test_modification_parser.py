"""Tests for modification extraction and deduplication."""

from plan_chat.models.domain import TakeoffModification
from plan_chat.models.schemas import QuestionClassification
from plan_chat.modification.parser import (
    ModificationParser,
    clean_description,
    deduplicate_modifications,
    detect_update_claims,
    find_existing_item,
    parse_quantity,
    should_parse,
)
from plan_chat.retrieval.normalization import normalize_takeoff_items


def _classification(intent="add", targets=None):
    return QuestionClassification(
        question_type="TAKEOFF_MODIFY", modification_intent=intent, targets=targets or []
    )


class TestHelpers:
    def test_parse_quantity(self):
        assert parse_quantity("12") == 12.0
        assert parse_quantity("2.5") == 2.5
        assert parse_quantity("10,400") == 10400.0
        assert parse_quantity("Three") == 3.0
        assert parse_quantity("dozen") is None
        assert parse_quantity(None) is None

    def test_clean_description(self):
        assert clean_description("**the fire extinguishers** ") == "fire extinguishers"
        assert clean_description("some exit signs") == "exit signs"

    def test_find_existing_item(self, sample_items):
        items = normalize_takeoff_items(sample_items)
        assert find_existing_item("fire extingushers", items).id == "fe-1"
        assert find_existing_item("parapet flashing", items).id == "t-2"
        assert find_existing_item("gypsum board type X", items).id == "t-3"
        assert find_existing_item("exit signs", items) is None
        assert find_existing_item("", items) is None

    def test_detect_update_claims(self):
        assert detect_update_claims("I've updated the fire extinguishers to a quantity of 2") == 2
        assert detect_update_claims("Set the exit signs to 6.") == 1
        assert detect_update_claims("The roof is 12,400 SF.") == 0

    def test_should_parse(self):
        assert should_parse(_classification("add"))
        assert should_parse(_classification("remove"))
        assert not should_parse(_classification("analyze_missing"))
        assert not should_parse(_classification("none"))
        assert not should_parse(QuestionClassification(question_type="TAKEOFF_ANALYZE", modification_intent="add"))


class TestJsonBlocks:
    def test_fenced_block_is_authoritative(self, sample_items):
        items = normalize_takeoff_items(sample_items)
        answer = (
            "Here are the changes:\n"
            "```json\n"
            '{"modifications": ['
            '{"action": "add", "item": {"description": "Exit signs", "quantity": 6, "unit": "EA", "unit_cost": 85}},'
            '{"action": "add", "item": {"name": "Fire extinguisher", "quantity": 4}},'
            '{"action": "remove", "itemId": "t-3", "reason": "Not in scope"},'
            '{"action": "rename", "item_id": "t-1"}'
            "]}\n"
            "```\n"
            "I also added 9 widgets to the takeoff."
        )

        parsed = ModificationParser().parse(answer, _classification(targets=["Life Safety"]), items)

        assert [m.action for m in parsed.modifications] == ["add", "update", "remove"]
        add, update, remove = parsed.modifications
        assert add.item == {
            "category": "Life Safety",
            "description": "Exit signs",
            "quantity": 6.0,
            "unit": "EA",
            "unit_cost": 85.0,
        }
        assert update.item_id == "fe-1"
        assert update.item == {"quantity": 4.0}
        assert remove.item_id == "t-3"
        assert remove.reason == "Not in scope"

    def test_fenced_block_numbers_are_lenient(self, sample_items):
        items = normalize_takeoff_items(sample_items)
        answer = (
            "```json\n"
            '{"modifications": [{"action": "add", "item": '
            '{"description": "Smoke detectors", "quantity": "12 EA", "unit_cost": "$85.50", "page_number": "A-101"}}]}\n'
            "```"
        )

        parsed = ModificationParser().parse(answer, _classification(), items)

        assert len(parsed.modifications) == 1
        assert parsed.modifications[0].item == {
            "category": "Uncategorized",
            "description": "Smoke detectors",
            "quantity": 12.0,
            "unit_cost": 85.5,
        }

    def test_invalid_json_falls_through_to_prose(self, sample_items):
        items = normalize_takeoff_items(sample_items)
        answer = "```json\n{not json}\n```\nAdd 3 exit signs at $85 each."

        parsed = ModificationParser().parse(answer, _classification(), items)

        assert len(parsed.modifications) == 1
        assert parsed.modifications[0].item["description"] == "exit signs"


class TestNaturalLanguage:
    def test_update_claim_matches_existing_item(self, sample_items):
        items = normalize_takeoff_items(sample_items)

        parsed = ModificationParser().parse(
            "I've updated the fire extinguishers to a quantity of 2", _classification(), items
        )

        assert len(parsed.modifications) == 1
        mod = parsed.modifications[0]
        assert mod.action == "update"
        assert mod.item_id == "fe-1"
        assert mod.item == {"quantity": 2.0, "unit": "EA"}

    def test_update_with_thousands_separator(self, sample_items):
        items = normalize_takeoff_items(sample_items)

        parsed = ModificationParser().parse(
            "I've updated the Type X gypsum board to a quantity of 10,400 SF.",
            _classification(intent="update"),
            items,
        )

        assert len(parsed.modifications) == 1
        mod = parsed.modifications[0]
        assert mod.action == "update"
        assert mod.item_id == "t-3"
        assert mod.item == {"quantity": 10400.0}

    def test_add_n_of_the_item(self, sample_items):
        items = normalize_takeoff_items(sample_items)

        parsed = ModificationParser().parse("Please add 4 of the exit signs.", _classification(), items)

        assert len(parsed.modifications) == 1
        assert parsed.modifications[0].item == {
            "description": "exit signs",
            "category": "Uncategorized",
            "quantity": 4.0,
            "unit": "EA",
        }

    def test_add_with_count_and_cost(self, sample_items):
        items = normalize_takeoff_items(sample_items)

        parsed = ModificationParser().parse("Add 3 exit signs at $85 each", _classification(), items)

        assert len(parsed.modifications) == 1
        mod = parsed.modifications[0]
        assert mod.action == "add"
        assert mod.item == {
            "description": "exit signs",
            "category": "Uncategorized",
            "quantity": 3.0,
            "unit": "EA",
            "unit_cost": 85.0,
        }

    def test_word_numbers(self, sample_items):
        items = normalize_takeoff_items(sample_items)
        parsed = ModificationParser().parse("add two fire extinguishers", _classification(), items)
        assert parsed.modifications[0].item_id == "fe-1"
        assert parsed.modifications[0].item["quantity"] == 2.0

    def test_sentence_fragments_are_skipped(self, sample_items):
        items = normalize_takeoff_items(sample_items)
        parsed = ModificationParser().parse(
            "I'll add the missing items to the takeoff.", _classification(), items
        )
        assert parsed.modifications == []

    def test_remove_requires_existing_item(self, sample_items):
        items = normalize_takeoff_items(sample_items)
        parser = ModificationParser()

        parsed = parser.parse("Please remove the TPO roof membrane.", _classification("remove"), items)
        assert [(m.action, m.item_id) for m in parsed.modifications] == [("remove", "t-1")]

        parsed = parser.parse("Please remove the elevator.", _classification("remove"), items)
        assert parsed.modifications == []

    def test_intent_gates_families(self, sample_items):
        items = normalize_takeoff_items(sample_items)
        parsed = ModificationParser().parse("Add 3 exit signs", _classification("remove"), items)
        assert parsed.modifications == []

    def test_analysis_is_never_parsed(self, sample_items):
        items = normalize_takeoff_items(sample_items)
        parsed = ModificationParser().parse("Add 3 exit signs", _classification("analyze_missing"), items)
        assert parsed.modifications == []
        assert parsed.explanation == "Add 3 exit signs"


class TestDeduplication:
    def test_updates_are_merged_per_item(self):
        mods = [
            TakeoffModification.update("fe-1", {"quantity": 2}),
            TakeoffModification.update("fe-1", {"unit_cost": 45.0, "quantity": None}),
            TakeoffModification.update("t-1", {}),
        ]
        result = deduplicate_modifications(mods)
        assert len(result) == 1
        assert result[0].item_id == "fe-1"
        assert result[0].item == {"quantity": 2, "unit_cost": 45.0}

    def test_adds_and_removes(self):
        mods = [
            TakeoffModification.add({"description": "Exit signs"}),
            TakeoffModification.remove("t-3"),
            TakeoffModification.add({"description": "exit sign"}),
            TakeoffModification.add({"description": "quantities and costs"}),
            TakeoffModification.add({"description": "cap"}),
            TakeoffModification.remove("t-3"),
            TakeoffModification.update("fe-1", {"quantity": 1}),
        ]
        result = deduplicate_modifications(mods)
        assert [(m.action, m.item_id) for m in result] == [
            ("update", "fe-1"),
            ("add", None),
            ("remove", "t-3"),
        ]
        assert result[1].item["description"] == "Exit signs"
