"""React Native emitter: referenced templates become a screen, a style sheet, an API bridge and a test."""
import logging
import re
from typing import Any, Dict, List, Tuple
from migrator.core.errors import EmissionUnmappable
from migrator.core.workflow import TargetKind
from migrator.generators.base import BaseEmitter, ProjectContext
from migrator.generators.mobile_gen.render import (
    render_api_bridge,
    render_screen,
    render_screen_test,
    render_stylesheet,
)
from migrator.generators.mobile_gen.units import css_to_native
from migrator.generators.rewrite_rules import (
    HOST_CALLBACK_CALL,
    MOBILE_MARKUP_RULES,
    MOBILE_SCRIPT_RULES,
    UNMAPPABLE_NATIVE_ELEMENTS,
    class_style_key,
    inline_style_key,
)
from migrator.generators.types import ConversionArtifact, TemplateRecord
from migrator.generators.ui_gen.emitter import needs_stylesheet, resolve_host_callbacks
from migrator.generators.ui_gen.markup import Element, analyze_markup, extract_body_markup, parse_markup

log = logging.getLogger(__name__)

CSS_RULE = re.compile(r"([^{}]+)\{([^{}]*)\}")
CSS_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)
CLASS_SELECTOR = re.compile(r"\.([\w-]+)")


def parse_class_rules(style_blocks: Tuple[str, ...]) -> Dict[str, Dict[str, Any]]:
    """Single-class selectors (.card, .a, .b) from <style> blocks, as native style objects."""
    rules: Dict[str, Dict[str, Any]] = {}
    for block in style_blocks:
        for match in CSS_RULE.finditer(CSS_COMMENT.sub("", block)):
            for selector in match.group(1).split(","):
                selector_match = CLASS_SELECTOR.fullmatch(selector.strip())
                if selector_match:
                    rules.setdefault(selector_match.group(1), {}).update(css_to_native(match.group(2)))
    return rules


def build_styles(root: Element, style_blocks: Tuple[str, ...]) -> Dict[str, Dict[str, Any]]:
    """Style sheet entries for the container, every class combination and every inline style."""
    class_rules = parse_class_rules(style_blocks)
    entries: Dict[str, Dict[str, Any]] = {}
    for element in root.iter():
        class_value = (element.attrs.get("class") or "").strip()
        if class_value:
            merged: Dict[str, Any] = {}
            for name in class_value.split():
                merged.update(class_rules.get(name, {}))
            entries[class_style_key(class_value)] = merged
        inline = (element.attrs.get("style") or "").strip()
        if inline:
            entries[inline_style_key(inline)] = css_to_native(inline)

    styles: Dict[str, Dict[str, Any]] = {"container": {"flex": 1, "padding": 16}}
    for key in sorted(entries):
        styles[key] = entries[key]
    return styles


class MobileUIEmitter(BaseEmitter):
    target = TargetKind.MOBILE_UI
    accepts_templates = True

    def convert(self, record: TemplateRecord, context: ProjectContext) -> List[ConversionArtifact]:
        ids = context.identifiers.template(record.name)
        features = analyze_markup(record.raw_markup)

        unmappable = sorted(UNMAPPABLE_NATIVE_ELEMENTS.intersection(features.element_counts))
        if unmappable:
            raise EmissionUnmappable(construct=f"<{unmappable[0]}>", record_name=record.name)

        routes = resolve_host_callbacks(features, context, record.name)
        jsx = self.rewrite(MOBILE_MARKUP_RULES, extract_body_markup(record.raw_markup), record.name, HOST_CALLBACK_CALL)
        script = self.rewrite(MOBILE_SCRIPT_RULES, "\n\n".join(features.inline_scripts), record.name, HOST_CALLBACK_CALL)

        styles = build_styles(parse_markup(record.raw_markup), features.style_blocks)
        with_stylesheet = needs_stylesheet(features)
        with_api = bool(routes)
        log.debug(f"Template {record.name}: {len(styles)} style entries, {len(routes)} host callbacks")

        artifacts = [
            self.artifact("screen", f"mobile/src/screens/{ids.pascal}Screen.js",
                          render_screen(ids, jsx, script, record.filename, styles, with_stylesheet, with_api),
                          record.name),
        ]
        if with_stylesheet:
            artifacts.append(self.artifact("styles", f"mobile/src/styles/{ids.camel}Styles.js",
                                           render_stylesheet(record.filename, styles), record.name))
        if with_api:
            artifacts.append(self.artifact("api-bridge", f"mobile/src/services/{ids.camel}Api.js",
                                           render_api_bridge(routes), record.name))
        artifacts.append(self.artifact("screen-test", f"mobile/src/__tests__/{ids.pascal}Screen.test.js",
                                       render_screen_test(ids, with_api), record.name))
        return artifacts
