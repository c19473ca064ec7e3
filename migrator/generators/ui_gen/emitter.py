"""React emitter: referenced templates become a component, styles, an API bridge and a test."""
import logging
from typing import List
from migrator.core.errors import EmissionUnmappable
from migrator.core.workflow import Classification, TargetKind
from migrator.generators.base import BaseEmitter, ProjectContext
from migrator.generators.endpoint_gen.emitter import bound_params, endpoint_route
from migrator.generators.rewrite_rules import HOST_CALLBACK_CALL, UI_MARKUP_RULES, UI_SCRIPT_RULES
from migrator.generators.types import ConversionArtifact, TemplateRecord
from migrator.generators.ui_gen.markup import MarkupFeatures, analyze_markup, extract_body_markup
from migrator.generators.ui_gen.render import (
    BridgeRoute,
    render_api_bridge,
    render_component,
    render_component_test,
    render_stylesheet,
)

log = logging.getLogger(__name__)

# Above this many elements a template gets its own stylesheet
STYLESHEET_ELEMENT_THRESHOLD = 10


def needs_stylesheet(features: MarkupFeatures) -> bool:
    return features.has_styles or features.element_count > STYLESHEET_ELEMENT_THRESHOLD


def resolve_host_callbacks(features: MarkupFeatures, context: ProjectContext, record_name: str) -> List[BridgeRoute]:
    """Route every server function the template calls.

    Endpoint functions reuse the verb and path the endpoint emitter binds them
    to, with the parameter names its handler reads; utilities go through the
    RPC route. Triggers have no HTTP route.
    """
    routes = []
    for fn in features.host_callbacks:
        if not context.identifiers.has_function(fn):
            raise EmissionUnmappable(construct=f"google.script.run.{fn}", record_name=record_name)
        classification = context.classification_of(fn)
        if classification == Classification.TRIGGER:
            raise EmissionUnmappable(construct=f"google.script.run.{fn} (trigger)", record_name=record_name)
        if classification == Classification.API_ENDPOINT:
            verb, path = endpoint_route(fn, context)
            params = tuple(bound_params(context.functions[fn]))
        else:
            verb, path = "POST", f"/api/rpc/{context.identifiers.function(fn).slug}"
            params = ()
        routes.append((fn, verb, path, params))
    return routes


class UIEmitter(BaseEmitter):
    target = TargetKind.UI
    accepts_templates = True

    def convert(self, record: TemplateRecord, context: ProjectContext) -> List[ConversionArtifact]:
        ids = context.identifiers.template(record.name)
        features = analyze_markup(record.raw_markup)
        routes = resolve_host_callbacks(features, context, record.name)

        jsx = self.rewrite(UI_MARKUP_RULES, extract_body_markup(record.raw_markup), record.name, HOST_CALLBACK_CALL)
        script = self.rewrite(UI_SCRIPT_RULES, "\n\n".join(features.inline_scripts), record.name, HOST_CALLBACK_CALL)
        with_styles = needs_stylesheet(features)
        with_api = bool(routes)
        log.debug(f"Template {record.name}: {features.element_count} elements, "
                  f"{len(routes)} host callbacks, styles={with_styles}")

        artifacts = [
            self.artifact("component", f"web/src/components/{ids.pascal}.jsx",
                          render_component(ids, jsx, script, record.filename, with_styles, with_api), record.name),
        ]
        if with_styles:
            artifacts.append(self.artifact("styles", f"web/src/styles/{ids.pascal}.css",
                                           render_stylesheet(ids, record.filename, list(features.style_blocks)),
                                           record.name))
        if with_api:
            artifacts.append(self.artifact("api-bridge", f"web/src/services/{ids.camel}Api.js",
                                           render_api_bridge(routes), record.name))
        artifacts.append(self.artifact("component-test", f"web/src/__tests__/{ids.pascal}.test.jsx",
                                       render_component_test(ids, with_api), record.name))
        return artifacts
