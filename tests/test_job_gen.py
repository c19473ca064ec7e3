"""Tests for the BullMQ job emitter and the trigger tables."""
import pytest
from migrator.analyzer.source_classifier import classify_source_unit
from migrator.core.pipeline import build_context
from migrator.core.workflow import Classification
from migrator.generators.job_gen.emitter import WEBHOOK_VALIDATION, JobEmitter, payload_fields
from migrator.generators.job_gen.schedules import (
    QUEUE_PROCESSOR,
    SCHEDULED_JOB,
    WEBHOOK_INTAKE,
    describe_trigger,
    event_type_from_name,
    schedule_for,
)
from migrator.generators.types import FunctionRecord, SourceUnit
from migrator.schemas.runs import RunOptions

SOURCE = """
ScriptApp.newTrigger('sendDailyReport').timeBased().everyDays(1).atHour(9).create();

function onEdit(e) {
  var sheet = e.source.getActiveSheet();
  Logger.log('edited ' + e.value);
}

function sendDailyReport() {
  var count = SpreadsheetApp.getActiveSpreadsheet().getSheetByName('Orders').getLastRow();
  Logger.log('orders: ' + count);
}

function formatCount(count) {
  return count + ' orders';
}

function onSelectionChange(e) {
  Logger.log(e.range);
}
"""


def _record(name: str) -> FunctionRecord:
    return FunctionRecord(name=name, param_names=(), body_text="", classification=Classification.TRIGGER)


def _context():
    classified = classify_source_unit(SourceUnit(filename="Triggers.gs", raw_text=SOURCE))
    return build_context([classified], [], RunOptions(targets=["job"]))


@pytest.mark.parametrize("frequency,cron", [
    ("MINUTES", "*/5 * * * *"),
    ("HOURLY", "0 * * * *"),
    ("DAILY", "0 9 * * *"),
    ("WEEKLY", "0 9 * * 1"),
    ("MONTHLY", "0 9 1 * *"),
    ("YEARLY", "0 9 1 1 *"),
    ("FORTNIGHTLY", "0 * * * *"),
    (None, "0 * * * *"),
])
def test_frequency_table(frequency, cron):
    assert schedule_for(frequency) == cron


@pytest.mark.parametrize("name,event_type", [
    ("onEdit", "ON_EDIT"),
    ("onOpen", "ON_OPEN"),
    ("onFormSubmit", "ON_FORM_SUBMIT"),
    ("onSelectionChange", "ON_SELECTION_CHANGE"),
    ("onChange", "ON_CHANGE"),
    ("onInstall", "ON_INSTALL"),
    ("triggerNightlyCleanup", "CLOCK"),
])
def test_event_type_from_name(name, event_type):
    assert event_type_from_name(name) == event_type


class TestDescribeTrigger:

    def test_edit_is_webhook_intake(self):
        descriptor = describe_trigger(_record("onEdit"))
        assert descriptor.conversion_kind == WEBHOOK_INTAKE
        assert descriptor.schedule_expression is None

    def test_selection_change_is_queue_processor(self):
        assert describe_trigger(_record("onSelectionChange")).conversion_kind == QUEUE_PROCESSOR

    def test_clock_defaults_to_hourly_schedule(self):
        descriptor = describe_trigger(_record("triggerNightlyCleanup"))
        assert descriptor.conversion_kind == SCHEDULED_JOB
        assert descriptor.schedule_expression == "0 * * * *"

    def test_installation_wins_over_name(self):
        context = _context()
        record = context.functions["sendDailyReport"]
        descriptor = describe_trigger(record, context.trigger_installations["sendDailyReport"])
        assert descriptor.event_type == "CLOCK"
        assert descriptor.schedule_expression == "0 9 * * *"


class TestJobEmitter:

    def test_on_edit_becomes_webhook_intake(self):
        context = _context()
        artifacts = JobEmitter().convert(context.functions["onEdit"], context)
        assert [(a.kind, a.target_path) for a in artifacts] == [
            (WEBHOOK_INTAKE, "worker/src/webhooks/on-edit.js"),
            (WEBHOOK_VALIDATION, "worker/src/middleware/onEditWebhook.js"),
            ("worker", "worker/src/workers/onEditWorker.js"),
            ("job", "worker/src/jobs/OnEditJob.js"),
        ]
        job = artifacts[3].content
        assert "class OnEditJob {" in job
        assert "var sheet = this.data.source.defaultTable();" in job
        assert "router.post('/webhooks/on-edit', validateOnEditWebhook," in artifacts[0].content

    def test_webhook_intake_validates_before_enqueueing(self):
        context = _context()
        intake, validation = JobEmitter().convert(context.functions["onEdit"], context)[:2]
        assert "require('../middleware/onEditWebhook')" in intake.content
        assert "attempts: 3, backoff: { type: 'exponential', delay: 1000 }" in intake.content
        assert "'source'" in validation.content
        assert "req.headers['x-webhook-signature']" in validation.content
        assert "createHmac('sha256', process.env.WEBHOOK_SECRET)" in validation.content
        assert "return res.status(401)" in validation.content
        assert "function validateOnEditWebhook(req, res, next) {" in validation.content

    @pytest.mark.parametrize("body,fields", [
        ("var a = this.data.value; var b = this.data.range.getA1Notation();", ["range", "value"]),
        ("this.data.value; this.data.value;", ["value"]),
        ("Logger.log('no event');", []),
    ])
    def test_payload_fields(self, body, fields):
        assert payload_fields(body) == fields

    def test_installed_utility_becomes_scheduled_job(self):
        context = _context()
        record = context.functions["sendDailyReport"]
        assert record.classification == Classification.UTILITY
        artifacts = JobEmitter().convert(record, context)
        queue = artifacts[0]
        assert queue.kind == SCHEDULED_JOB
        assert queue.target_path == "worker/src/queues/send-daily-report.js"
        assert "repeat: { pattern: '0 9 * * *' }" in queue.content
        assert "removeOnComplete: true," in queue.content
        assert "attempts: 3," in queue.content
        assert "async function scheduleSendDailyReport()" in queue.content
        job = artifacts[2].content
        assert "(await db.active().table('Orders').count())" in job
        assert "SpreadsheetApp" not in job

    def test_queue_processor_enqueues_with_retries(self):
        context = _context()
        queue = JobEmitter().convert(context.functions["onSelectionChange"], context)[0]
        assert queue.kind == QUEUE_PROCESSOR
        assert ("return onSelectionChangeQueue.add('on-selection-change', data || {}, "
                "{ attempts: 3, backoff: { type: 'exponential', delay: 1000 } });") in queue.content

    def test_plain_utility_becomes_worker_library(self):
        context = _context()
        artifacts = JobEmitter().convert(context.functions["formatCount"], context)
        assert [(a.kind, a.target_path) for a in artifacts] == [("library", "worker/src/lib/format-count.js")]
        assert "function formatCount(count) {" in artifacts[0].content

    def test_emitter_accepts_triggers_and_utilities_only(self):
        emitter = JobEmitter()
        assert emitter.accepts_record(_record("onEdit"))
        endpoint = FunctionRecord(name="doGet", param_names=(), body_text="",
                                  classification=Classification.API_ENDPOINT)
        assert not emitter.accepts_record(endpoint)
