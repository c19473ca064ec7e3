"""Tests for CSS unit conversion and the React Native emitter."""
import pytest
from migrator.analyzer.source_classifier import classify_source_unit
from migrator.core.errors import EmissionUnmappable
from migrator.core.pipeline import build_context
from migrator.generators.mobile_gen.emitter import MobileUIEmitter, build_styles, parse_class_rules
from migrator.generators.mobile_gen.units import (
    convert_color,
    convert_pixel_length,
    convert_relative_font,
    css_to_native,
)
from migrator.generators.rewrite_rules import inline_style_key
from migrator.generators.types import SourceUnit, TemplateRecord
from migrator.generators.ui_gen.markup import analyze_markup, parse_markup
from migrator.schemas.runs import RunOptions

CARD_TEMPLATE = """<style>
  .card { padding: 8px; background-color: rgb(255, 255, 255); }
</style>
<div class="card">
  <p style="font-size: large; color: #333">Hello</p>
  <a href="https://example.com">Docs</a>
</div>
"""


def _context(*templates):
    source = "function getUsers() { return []; }\nfunction getUser(id) { return id; }\nfunction onOpen(e) {}"
    classified = classify_source_unit(SourceUnit(filename="Code.gs", raw_text=source))
    return build_context([classified], list(templates), RunOptions(targets=["mobile-ui"]))


class TestUnitConversion:

    @pytest.mark.parametrize("value,expected", [
        ("12px", 12),
        ("1.5em", 24),
        ("2rem", 32),
        ("0.5px", 0.5),
        ("12pt", 16),
        ("9pt", 12),
        ("10pt", 13.33),
        ("50%", "50%"),
        ("auto", "auto"),
    ])
    def test_convert_pixel_length(self, value, expected):
        assert convert_pixel_length(value) == expected

    @pytest.mark.parametrize("value,expected", [
        ("large", 18),
        ("150%", 24),
        ("2em", 32),
        ("14px", 14),
        ("12pt", 16),
        ("inherit", 16),
    ])
    def test_convert_relative_font(self, value, expected):
        assert convert_relative_font(value) == expected

    def test_convert_color(self):
        assert convert_color("rgb(255, 0, 16)") == "#ff0010"
        assert convert_color("#abc") == "#abc"
        assert convert_color("rebeccapurple") == "rebeccapurple"

    def test_css_to_native(self):
        assert css_to_native("border: 1px solid #ccc; cursor: pointer; margin-top: 8px; font-weight: bold") == {
            "borderWidth": 1,
            "borderStyle": "solid",
            "borderColor": "#ccc",
            "marginTop": 8,
            "fontWeight": "bold",
        }


class TestStyles:

    def test_parse_class_rules(self):
        rules = parse_class_rules((".a, .b { color: red; } /* note */ div.c { color: blue; }",))
        assert rules == {"a": {"color": "red"}, "b": {"color": "red"}}

    def test_build_styles_orders_container_first(self):
        features = analyze_markup(CARD_TEMPLATE)
        styles = build_styles(parse_markup(CARD_TEMPLATE), features.style_blocks)
        key = inline_style_key("font-size: large; color: #333")
        assert list(styles) == ["container", "card", key]
        assert styles["card"] == {"padding": 8, "backgroundColor": "#ffffff"}
        assert styles[key] == {"fontSize": 18, "color": "#333"}


class TestMobileUIEmitter:

    def test_card_screen_and_stylesheet(self):
        template = TemplateRecord(filename="Card.html", raw_markup=CARD_TEMPLATE)
        artifacts = MobileUIEmitter().convert(template, _context(template))
        assert [(a.kind, a.target_path) for a in artifacts] == [
            ("screen", "mobile/src/screens/CardScreen.js"),
            ("styles", "mobile/src/styles/cardStyles.js"),
            ("screen-test", "mobile/src/__tests__/CardScreen.test.js"),
        ]
        screen = artifacts[0].content
        assert "import { Linking, ScrollView, Text, TouchableOpacity, View } from 'react-native';" in screen
        assert "import styles from '../styles/cardStyles';" in screen
        assert "<View style={styles.card}>" in screen
        assert "onPress={() => Linking.openURL('https://example.com')}" in screen
        assert "backgroundColor: '#ffffff'," in artifacts[1].content

    def test_small_template_keeps_styles_inline(self):
        template = TemplateRecord(filename="Hello.html", raw_markup="<p>Hi</p>")
        artifacts = MobileUIEmitter().convert(template, _context(template))
        assert [a.kind for a in artifacts] == ["screen", "screen-test"]
        assert "const styles = StyleSheet.create({" in artifacts[0].content
        assert "<Text>Hi</Text>" in artifacts[0].content

    def test_host_callbacks_use_handle_host_call(self):
        markup = "<button onclick=\"google.script.run.getUsers()\">Load</button>"
        template = TemplateRecord(filename="Users.html", raw_markup=markup)
        artifacts = {a.kind: a for a in MobileUIEmitter().convert(template, _context(template))}
        assert "getUsers: { method: 'get', path: '/api/users', rpc: false }," in artifacts["api-bridge"].content
        assert "onPress={() => { handleHostCall('getUsers', []) }}" in artifacts["screen"].content

    def test_endpoint_parameters_travel_with_the_route(self):
        markup = "<button onclick=\"google.script.run.getUser(7)\">Show</button>"
        template = TemplateRecord(filename="User.html", raw_markup=markup)
        artifacts = {a.kind: a for a in MobileUIEmitter().convert(template, _context(template))}
        bridge = artifacts["api-bridge"].content
        assert "getUser: { method: 'get', path: '/api/user', rpc: false, params: ['id'] }," in bridge
        assert "Object.fromEntries(route.params.map((param, i) => [param, args[i]]))" in bridge

    def test_trigger_callback_is_unmappable(self):
        markup = "<button onclick=\"google.script.run.onOpen()\">Open</button>"
        template = TemplateRecord(filename="Open.html", raw_markup=markup)
        with pytest.raises(EmissionUnmappable) as exc_info:
            MobileUIEmitter().convert(template, _context(template))
        assert exc_info.value.construct == "google.script.run.onOpen (trigger)"

    def test_unmappable_element(self):
        template = TemplateRecord(filename="Video.html", raw_markup="<video src=\"a.mp4\"></video>")
        with pytest.raises(EmissionUnmappable) as exc_info:
            MobileUIEmitter().convert(template, _context(template))
        assert exc_info.value.construct == "<video>"
