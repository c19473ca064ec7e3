"""Unit tests for the Apps Script source classifier."""
import pytest
from migrator.analyzer.source_classifier import (
    classify,
    classify_source_unit,
    extract_functions,
    extract_template_references,
    extract_trigger_installations,
)
from migrator.core.workflow import Classification
from migrator.generators.types import SourceUnit

SOURCE = """
// function commentedOut() {}
function doGetUsers(e) {
  var rows = SpreadsheetApp.openById('sheet-1').getSheetByName('Users').getDataRange().getValues();
  return ContentService.createTextOutput(JSON.stringify(rows));
}

function formatRow(row, separator = ', ') {
  function quote(value) { return '"' + value + '}"'; }
  return row.map(quote).join(separator);
}

function onEdit(e) {
  formatRow([e.value]);
}
"""


class TestClassify:
    """Name-based classification rules."""

    @pytest.mark.parametrize("name,expected", [
        ("doGet", Classification.API_ENDPOINT),
        ("doPost", Classification.API_ENDPOINT),
        ("getUsers", Classification.API_ENDPOINT),
        ("apiListOrders", Classification.API_ENDPOINT),
        ("onEdit", Classification.TRIGGER),
        ("onFormSubmit", Classification.TRIGGER),
        ("triggerNightlySync", Classification.TRIGGER),
        ("formatRow", Classification.UTILITY),
        ("on", Classification.UTILITY),
        ("getter", Classification.UTILITY),
    ])
    def test_classification(self, name, expected):
        assert classify(name) == expected

    def test_endpoint_rule_wins_over_trigger_rule(self):
        # Both rules match; the first one in CLASSIFICATION_RULES decides
        assert classify("onGetData") == Classification.API_ENDPOINT

    def test_classification_is_deterministic(self):
        assert {classify("sendReport") for _ in range(5)} == {Classification.UTILITY}


class TestExtractFunctions:
    """Top-level function extraction."""

    def test_extracts_top_level_functions_in_order(self):
        records = extract_functions(SOURCE, "Code.gs")
        assert [r.name for r in records] == ["doGetUsers", "formatRow", "onEdit"]
        assert all(r.source_filename == "Code.gs" for r in records)

    def test_nested_functions_stay_in_parent_body(self):
        record = extract_functions(SOURCE)[1]
        assert "function quote(value)" in record.body_text
        assert record.body_text.endswith("return row.map(quote).join(separator);")

    def test_params_drop_default_values(self):
        record = extract_functions(SOURCE)[1]
        assert record.param_names == ("row", "separator")

    def test_classification_is_attached(self):
        classes = {r.name: r.classification for r in extract_functions(SOURCE)}
        assert classes == {
            "doGetUsers": Classification.API_ENDPOINT,
            "formatRow": Classification.UTILITY,
            "onEdit": Classification.TRIGGER,
        }

    def test_malformed_signature_is_skipped(self):
        records = extract_functions("function ok() { return 1; }\nfunction broken(a {")
        assert [r.name for r in records] == ["ok"]

    def test_duplicate_names_keep_first_declaration(self):
        records = extract_functions("function a() { return 1; }\nfunction a() { return 2; }")
        assert len(records) == 1
        assert records[0].body_text.strip() == "return 1;"

    def test_no_functions_is_empty(self):
        assert extract_functions("var x = 1;") == []


class TestTemplatesAndTriggers:
    """Template references and ScriptApp trigger installations."""

    def test_template_references(self):
        source = """
        function doGet() { return HtmlService.createHtmlOutputFromFile('Index'); }
        function form() { return HtmlService.createTemplateFromFile("Form.html").evaluate(); }
        """
        assert extract_template_references(source) == {"Index", "Form"}

    def test_time_based_installation(self):
        source = "ScriptApp.newTrigger('sendReport').timeBased().everyDays(1).atHour(9).create();"
        installation = extract_trigger_installations(source)["sendReport"]
        assert installation.event_type == "CLOCK"
        assert installation.frequency == "DAILY"

    def test_weekly_wins_over_at_hour(self):
        source = ("ScriptApp.newTrigger('digest').timeBased()"
                  ".onWeekDay(ScriptApp.WeekDay.MONDAY).atHour(9).create();")
        assert extract_trigger_installations(source)["digest"].frequency == "WEEKLY"

    def test_event_installation(self):
        source = "ScriptApp.newTrigger('syncForm').forSpreadsheet(ss).onFormSubmit().create();"
        installation = extract_trigger_installations(source)["syncForm"]
        assert installation.event_type == "ON_FORM_SUBMIT"
        assert installation.frequency is None

    def test_classify_source_unit(self):
        unit = SourceUnit(filename="Code.gs", raw_text=SOURCE + "\nHtmlService.createHtmlOutputFromFile('Index');")
        classified = classify_source_unit(unit)
        assert classified.unit is unit
        assert len(classified.functions) == 3
        assert classified.template_references == frozenset({"Index"})
        assert classified.trigger_installations == {}
