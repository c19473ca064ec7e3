"""String templates for BullMQ intake, queue, worker and job files."""
import textwrap
from typing import List, Sequence
from migrator.generators.base import render_runtime_requires
from migrator.generators.types import Identifiers, TriggerDescriptor

# Retry policy for every enqueued job
JOB_OPTIONS = "attempts: 3, backoff: { type: 'exponential', delay: 1000 }"


def render_webhook_validation(ids: Identifiers, required_fields: Sequence[str]) -> str:
    """Generate worker/src/middleware/<camel>Webhook.js.

    Rejects payloads missing a field the job reads and, when WEBHOOK_SECRET
    is set, payloads whose ``x-webhook-signature`` is not the hex HMAC-SHA256
    of the JSON body.
    """
    fields = ", ".join(f"'{f}'" for f in required_fields)
    return f"""const crypto = require('crypto');

const REQUIRED_FIELDS = [{fields}];

function signatureMatches(body, signature) {{
  const expected = crypto
    .createHmac('sha256', process.env.WEBHOOK_SECRET)
    .update(JSON.stringify(body))
    .digest('hex');
  const given = Buffer.from(String(signature || ''));
  return given.length === expected.length && crypto.timingSafeEqual(given, Buffer.from(expected));
}}

function validate{ids.pascal}Webhook(req, res, next) {{
  const body = req.body;
  if (!body || typeof body !== 'object') {{
    return res.status(400).json({{ error: 'Expected a JSON object' }});
  }}
  for (const field of REQUIRED_FIELDS) {{
    if (body[field] === undefined) {{
      return res.status(400).json({{ error: `Missing required field: ${{field}}` }});
    }}
  }}
  if (process.env.WEBHOOK_SECRET && !signatureMatches(body, req.headers['x-webhook-signature'])) {{
    return res.status(401).json({{ error: 'Invalid signature' }});
  }}
  return next();
}}

module.exports = {{ validate{ids.pascal}Webhook }};
"""


def render_webhook(ids: Identifiers) -> str:
    """Generate worker/src/webhooks/<slug>.js: a validated HTTP intake that enqueues the event."""
    return f"""const express = require('express');
const {{ Queue }} = require('bullmq');
const {{ connection }} = require('../config/redis');
const {{ validate{ids.pascal}Webhook }} = require('../middleware/{ids.camel}Webhook');

const router = express.Router();
const {ids.camel}Queue = new Queue('{ids.slug}', {{ connection }});

router.post('/webhooks/{ids.slug}', validate{ids.pascal}Webhook, async (req, res, next) => {{
  try {{
    const job = await {ids.camel}Queue.add('{ids.slug}', req.body, {{ {JOB_OPTIONS} }});
    res.status(202).json({{ jobId: job.id }});
  }} catch (err) {{
    next(err);
  }}
}});

module.exports = router;
"""


def render_queue(ids: Identifiers, descriptor: TriggerDescriptor) -> str:
    """Generate worker/src/queues/<slug>.js; scheduled queues register a repeatable job."""
    lines = [
        "const { Queue } = require('bullmq');",
        "const { connection } = require('../config/redis');",
        "",
        f"const {ids.camel}Queue = new Queue('{ids.slug}', {{ connection }});",
        "",
    ]
    if descriptor.schedule_expression:
        lines.extend([
            f"async function schedule{ids.pascal}() {{",
            f"  await {ids.camel}Queue.add('{ids.slug}', {{}}, {{",
            f"    repeat: {{ pattern: '{descriptor.schedule_expression}' }},",
            f"    jobId: '{ids.slug}-schedule',",
            "    removeOnComplete: true,",
            "    attempts: 3,",
            "  });",
            "}",
            "",
            f"module.exports = {{ {ids.camel}Queue, schedule{ids.pascal} }};",
        ])
    else:
        lines.extend([
            f"async function enqueue{ids.pascal}(data) {{",
            f"  return {ids.camel}Queue.add('{ids.slug}', data || {{}}, {{ {JOB_OPTIONS} }});",
            "}",
            "",
            f"module.exports = {{ {ids.camel}Queue, enqueue{ids.pascal} }};",
        ])
    lines.append("")
    return "\n".join(lines)


def render_worker(ids: Identifiers) -> str:
    """Generate worker/src/workers/<camel>Worker.js content."""
    return f"""const {{ Worker }} = require('bullmq');
const {{ connection }} = require('../config/redis');
const {ids.pascal}Job = require('../jobs/{ids.pascal}Job');

const {ids.camel}Worker = new Worker('{ids.slug}', async (job) => {{
  const handler = new {ids.pascal}Job(job.data);
  return handler.run();
}}, {{ connection }});

{ids.camel}Worker.on('failed', (job, err) => {{
  console.error(`[{ids.slug}] job ${{job ? job.id : '?'}} failed: ${{err.message}}`);
}});

module.exports = {ids.camel}Worker;
"""


def render_job(ids: Identifiers, descriptor: TriggerDescriptor, body: str, utilities: List[Identifiers]) -> str:
    """Generate worker/src/jobs/<Pascal>Job.js: the migrated trigger body as ``run()``."""
    requires = render_runtime_requires(body, "../config")
    requires += [f"const {u.name} = require('../lib/{u.slug}');" for u in utilities]
    lines = ["'use strict';", ""]
    if requires:
        lines.extend(requires)
        lines.append("")
    lines.extend([
        f"// Migrated from {ids.name}(); {descriptor.event_type} -> {descriptor.conversion_kind}",
        f"class {ids.pascal}Job {{",
        "  constructor(data) {",
        "    this.data = data || {};",
        "  }",
        "",
        "  async run() {",
    ])
    if body.strip():
        lines.append(textwrap.indent(body, "    ").rstrip("\n"))
    lines.extend([
        "  }",
        "}",
        "",
        f"module.exports = {ids.pascal}Job;",
        "",
    ])
    return "\n".join(lines)
