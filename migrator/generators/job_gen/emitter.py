"""BullMQ emitter: trigger records become an intake or queue, a worker and a job class."""
import logging
import re
from typing import List
from migrator.core.workflow import Classification, TargetKind
from migrator.generators.base import BaseEmitter, ProjectContext, await_calls
from migrator.generators.endpoint_gen.emitter import library_dependencies
from migrator.generators.endpoint_gen.render import render_library
from migrator.generators.job_gen.render import (
    render_job,
    render_queue,
    render_webhook,
    render_webhook_validation,
    render_worker,
)
from migrator.generators.job_gen.schedules import WEBHOOK_INTAKE, describe_trigger
from migrator.generators.rewrite_rules import JOB_RULES
from migrator.generators.types import ConversionArtifact, FunctionRecord

log = logging.getLogger(__name__)

WEBHOOK_VALIDATION = "webhook-validation"

# Event fields a migrated job body reads
PAYLOAD_FIELD = re.compile(r"\bthis\.data\.(\w+)")


def payload_fields(body: str) -> List[str]:
    return sorted(set(PAYLOAD_FIELD.findall(body)))


class JobEmitter(BaseEmitter):
    target = TargetKind.JOB
    accepts = frozenset({Classification.TRIGGER, Classification.UTILITY})

    def convert(self, record: FunctionRecord, context: ProjectContext) -> List[ConversionArtifact]:
        ids = context.identifiers.function(record.name)
        body = await_calls(self.rewrite(JOB_RULES, record.body_text, record.name), context.async_functions)
        utilities = library_dependencies(record, context)
        installation = context.trigger_installations.get(record.name)

        # A utility installed through ScriptApp.newTrigger still runs as a trigger
        if record.classification == Classification.UTILITY and installation is None:
            return [self.artifact(
                "library",
                f"worker/src/lib/{ids.slug}.js",
                render_library(ids, list(record.param_names), body, utilities),
                record.name,
            )]

        descriptor = describe_trigger(record, installation)
        log.debug(f"Trigger {record.name}: {descriptor.event_type} -> {descriptor.conversion_kind}")

        if descriptor.conversion_kind == WEBHOOK_INTAKE:
            intake = [
                self.artifact(WEBHOOK_INTAKE, f"worker/src/webhooks/{ids.slug}.js", render_webhook(ids), record.name),
                self.artifact(WEBHOOK_VALIDATION, f"worker/src/middleware/{ids.camel}Webhook.js",
                              render_webhook_validation(ids, payload_fields(body)), record.name),
            ]
        else:
            intake = [self.artifact(descriptor.conversion_kind, f"worker/src/queues/{ids.slug}.js",
                                    render_queue(ids, descriptor), record.name)]
        return intake + [
            self.artifact("worker", f"worker/src/workers/{ids.camel}Worker.js", render_worker(ids), record.name),
            self.artifact("job", f"worker/src/jobs/{ids.pascal}Job.js",
                          render_job(ids, descriptor, body, utilities), record.name),
        ]
