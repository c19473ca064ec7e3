"""String templates for Express route, controller, model and middleware files."""
import textwrap
from typing import List, Sequence
from migrator.generators.base import render_runtime_requires
from migrator.generators.types import Identifiers

SQL_BACKENDS = {"postgres", "mysql", "sqlite"}


def _indent(text: str, spaces: int) -> str:
    return textwrap.indent(text, " " * spaces) if text.strip() else ""


def _lib_requires(utilities: List[Identifiers], lib_dir: str) -> List[str]:
    return [f"const {ids.name} = require('{lib_dir}/{ids.slug}');" for ids in utilities]


def render_route(ids: Identifiers, verb: str, path: str) -> str:
    """Generate service/src/routes/<slug>.js content."""
    lines = [
        "const express = require('express');",
        f"const {{ validate{ids.pascal} }} = require('../middleware/{ids.camel}Middleware');",
        f"const {{ handle{ids.pascal} }} = require('../controllers/{ids.camel}Controller');",
        "",
        "const router = express.Router();",
        "",
        f"router.{verb.lower()}('{path}', validate{ids.pascal}, handle{ids.pascal});",
        "",
        "module.exports = router;",
        "",
    ]
    return "\n".join(lines)


def render_controller(ids: Identifiers, body: str, utilities: List[Identifiers],
                      params: Sequence[str] = ()) -> str:
    """Generate service/src/controllers/<camel>Controller.js content.

    The handler exposes the merged query and body parameters as ``params``,
    the name the request rewrite rules target; caller arguments are read from
    it by name.
    """
    requires = render_runtime_requires(body, "../config") + _lib_requires(utilities, "../lib")
    lines = ["'use strict';", ""]
    if requires:
        lines.extend(requires)
        lines.append("")
    lines.extend([
        f"// Migrated from {ids.name}()",
        f"async function handle{ids.pascal}(req, res, next) {{",
        "  const params = { ...req.query, ...req.body };",
    ])
    if params:
        lines.append(f"  const {{ {', '.join(params)} }} = params;")
    lines.append("  try {")
    if body.strip():
        lines.append(_indent(body, 4).rstrip("\n"))
    lines.extend([
        "    if (!res.headersSent) {",
        "      res.status(204).end();",
        "    }",
        "  } catch (err) {",
        "    next(err);",
        "  }",
        "}",
        "",
        f"module.exports = {{ handle{ids.pascal} }};",
        "",
    ])
    return "\n".join(lines)


def render_model(ids: Identifiers, persistence: str) -> str:
    """Generate service/src/models/<camel>Model.js for the chosen backend."""
    model = f"{ids.pascal}Model"
    table = ids.slug.replace("-", "_")
    if persistence in SQL_BACKENDS:
        return f"""const {{ DataTypes }} = require('sequelize');
const {{ sequelize }} = require('../config/database');

const {model} = sequelize.define('{ids.pascal}', {{
  id: {{ type: DataTypes.INTEGER, primaryKey: true, autoIncrement: true }},
  data: {{ type: DataTypes.JSON, allowNull: false, defaultValue: {{}} }},
}}, {{
  tableName: '{table}',
  timestamps: true,
}});

module.exports = {model};
"""
    if persistence == "mongo":
        return f"""const mongoose = require('mongoose');

const {ids.camel}Schema = new mongoose.Schema({{
  data: {{ type: mongoose.Schema.Types.Mixed, default: {{}} }},
}}, {{
  collection: '{table}',
  timestamps: true,
}});

module.exports = mongoose.model('{ids.pascal}', {ids.camel}Schema);
"""
    return f"""// In-memory store; no persistence backend was selected
const records = [];

const {model} = {{
  async findAll() {{
    return records.slice();
  }},
  async create(data) {{
    const record = {{ id: records.length + 1, data }};
    records.push(record);
    return record;
  }},
  async count() {{
    return records.length;
  }},
}};

module.exports = {model};
"""


def render_middleware(ids: Identifiers, verb: str) -> str:
    """Generate service/src/middleware/<camel>Middleware.js content."""
    source = "req.query" if verb == "GET" else "req.body"
    return f"""function validate{ids.pascal}(req, res, next) {{
  if ({source} === undefined || {source} === null) {{
    return res.status(400).json({{ error: 'Missing request parameters' }});
  }}
  console.log(`[{ids.slug}] ${{req.method}} ${{req.originalUrl}}`);
  return next();
}}

module.exports = {{ validate{ids.pascal} }};
"""


def render_library(ids: Identifiers, params: List[str], body: str,
                   utilities: List[Identifiers], config_dir: str = "../config") -> str:
    """Generate a <root>/src/lib/<slug>.js module exporting one migrated helper."""
    requires = render_runtime_requires(body, config_dir) + _lib_requires(utilities, ".")
    prefix = "async " if "await " in body else ""
    lines = ["'use strict';", ""]
    if requires:
        lines.extend(requires)
        lines.append("")
    lines.append(f"{prefix}function {ids.name}({', '.join(params)}) {{")
    if body.strip():
        lines.append(_indent(body, 2).rstrip("\n"))
    lines.extend([
        "}",
        "",
        f"module.exports = {ids.name};",
        "",
    ])
    return "\n".join(lines)
