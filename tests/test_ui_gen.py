"""Tests for markup analysis and the React emitter."""
import pytest
from migrator.analyzer.source_classifier import classify_source_unit, split_declarations
from migrator.core.errors import EmissionUnmappable
from migrator.core.pipeline import build_context
from migrator.generators.types import SourceUnit, TemplateRecord
from migrator.generators.ui_gen.emitter import UIEmitter
from migrator.generators.ui_gen.markup import analyze_markup, extract_body_markup
from migrator.generators.ui_gen.render import named_payload
from migrator.schemas.runs import RunOptions

SERVER_SOURCE = """
function doGet() {
  return HtmlService.createHtmlOutputFromFile('Notes');
}

function getUsers() {
  return SpreadsheetApp.getActiveSpreadsheet().getSheetByName('Users').getDataRange().getValues();
}

function saveNote(text) {
  PropertiesService.getScriptProperties().setProperty('note', text);
}

function getUser(id) {
  return SpreadsheetApp.getActiveSpreadsheet().getSheetByName('Users').getDataRange().getValues()[id];
}

function onEdit(e) {
  Logger.log(e.value);
}
"""

FORM_TEMPLATE = """<!DOCTYPE html>
<html>
  <head><base target="_top"></head>
  <body>
    <form id="search">
      <input type="text" name="q" style="width: 100px">
      <button type="submit">Go</button>
    </form>
  </body>
</html>
"""

NOTES_TEMPLATE = """<div id="list"></div>
<textarea id="note"></textarea>
<button onclick="load()">Load</button>
<button onclick="save()">Save</button>
<script>
  function load() {
    google.script.run.withSuccessHandler(render).getUsers();
  }
  function save() {
    google.script.run.saveNote(document.getElementById('note').value);
  }
  function render(users) {
    document.getElementById('list').textContent = users.length;
  }
  load();
</script>
"""


def _context(*templates):
    classified = classify_source_unit(SourceUnit(filename="Code.gs", raw_text=SERVER_SOURCE))
    return build_context([classified], list(templates), RunOptions(targets=["ui"]))


class TestMarkupAnalysis:

    def test_features(self):
        features = analyze_markup(FORM_TEMPLATE)
        assert features.form_count == 1
        assert features.element_counts["input"] == 1
        assert features.inline_styles == ("width: 100px",)
        assert features.has_styles
        assert features.host_callbacks == ()

    def test_host_callbacks_and_scripts(self):
        features = analyze_markup(NOTES_TEMPLATE)
        assert features.host_callbacks == ("getUsers", "saveNote")
        assert features.uses_host_api
        assert len(features.inline_scripts) == 1
        assert not features.has_styles

    def test_body_markup_drops_document_shell(self):
        body = extract_body_markup(FORM_TEMPLATE)
        assert body.startswith('<form id="search">')
        assert "<html" not in body and "<base" not in body

    def test_split_declarations(self):
        declarations, statements = split_declarations(analyze_markup(NOTES_TEMPLATE).inline_scripts[0])
        assert declarations.startswith("function load() {")
        assert "function render(users) {" in declarations
        assert statements == "load();"


class TestUIEmitter:

    def test_form_with_inline_style(self):
        template = TemplateRecord(filename="Form.html", raw_markup=FORM_TEMPLATE)
        context = _context(template)
        artifacts = UIEmitter().convert(template, context)
        assert [(a.kind, a.target_path) for a in artifacts] == [
            ("component", "web/src/components/Form.jsx"),
            ("styles", "web/src/styles/Form.css"),
            ("component-test", "web/src/__tests__/Form.test.jsx"),
        ]
        component = artifacts[0].content
        assert "export default function Form() {" in component
        assert "import '../styles/Form.css';" in component
        assert "<input type=\"text\" name=\"q\" style={{ width: '100px' }} />" in component
        assert "useEffect" not in component

    def test_host_callbacks_get_api_bridge(self):
        template = TemplateRecord(filename="Notes.html", raw_markup=NOTES_TEMPLATE)
        context = _context(template)
        artifacts = {a.kind: a for a in UIEmitter().convert(template, context)}
        assert set(artifacts) == {"component", "api-bridge", "component-test"}
        assert artifacts["api-bridge"].target_path == "web/src/services/notesApi.js"

        bridge = artifacts["api-bridge"].content
        assert "getUsers: (...args) => client.get('/api/users', { params: args[0] })" in bridge
        assert "saveNote: (...args) => client.post('/api/rpc/save-note', { args })" in bridge
        assert "axios" in artifacts["api-bridge"].declared_dependencies

        component = artifacts["component"].content
        assert "import api from '../services/notesApi';" in component
        assert "api.getUsers().then(render);" in component
        assert "onClick={() => { load() }}" in component
        assert "  function load() {" in component
        assert "  useEffect(() => {\n    load();\n  }, []);" in component
        assert "google.script" not in component

    def test_unknown_server_function_is_unmappable(self):
        template = TemplateRecord(filename="Broken.html",
                                  raw_markup="<script>google.script.run.missingFn();</script>")
        context = _context(template)
        with pytest.raises(EmissionUnmappable) as exc_info:
            UIEmitter().convert(template, context)
        assert exc_info.value.construct == "google.script.run.missingFn"

    def test_trigger_callback_is_unmappable(self):
        template = TemplateRecord(filename="Edit.html",
                                  raw_markup="<button onclick=\"google.script.run.onEdit()\">Edit</button>")
        with pytest.raises(EmissionUnmappable) as exc_info:
            UIEmitter().convert(template, _context(template))
        assert exc_info.value.construct == "google.script.run.onEdit (trigger)"

    def test_endpoint_arguments_are_sent_by_name(self):
        template = TemplateRecord(filename="User.html",
                                  raw_markup="<script>google.script.run.getUser(3);</script>")
        artifacts = {a.kind: a for a in UIEmitter().convert(template, _context(template))}
        bridge = artifacts["api-bridge"].content
        assert "getUser: (...args) => client.get('/api/user', { params: { id: args[0] } })" in bridge

    @pytest.mark.parametrize("params,payload", [
        ((), "args[0]"),
        (("id",), "{ id: args[0] }"),
        (("title", "body"), "{ title: args[0], body: args[1] }"),
    ])
    def test_named_payload(self, params, payload):
        assert named_payload(params) == payload

    def test_large_template_gets_stylesheet(self):
        markup = "<ul>" + "<li>item</li>" * 11 + "</ul>"
        template = TemplateRecord(filename="List.html", raw_markup=markup)
        artifacts = UIEmitter().convert(template, _context(template))
        assert "web/src/styles/List.css" in [a.target_path for a in artifacts]
