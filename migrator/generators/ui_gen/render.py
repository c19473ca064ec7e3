"""String templates for React components, styles, API bridges and component tests."""
import textwrap
from typing import List, Sequence, Tuple
from migrator.analyzer.source_classifier import split_declarations
from migrator.generators.types import Identifiers

# (server function, HTTP verb, path, parameter names the handler reads)
BridgeRoute = Tuple[str, str, str, Tuple[str, ...]]


def script_lines(script: str) -> Tuple[List[str], bool]:
    """Component-body lines for an inline script, and whether they need ``useEffect``.

    Function declarations live in the component body so JSX handlers can call
    them; the remaining statements run once after mount.
    """
    declarations, statements = split_declarations(script)
    lines = []
    if declarations:
        lines.extend([textwrap.indent(declarations, "  ").rstrip("\n"), ""])
    if statements:
        lines.extend([
            "  useEffect(() => {",
            textwrap.indent(statements, "    ").rstrip("\n"),
            "  }, []);",
            "",
        ])
    return lines, bool(statements)


def render_component(ids: Identifiers, jsx: str, script: str, source_name: str,
                     with_styles: bool, with_api: bool) -> str:
    """Generate web/src/components/<Pascal>.jsx content."""
    body, uses_effect = script_lines(script)
    react_import = "import React, { useEffect } from 'react';" if uses_effect else "import React from 'react';"
    lines = [react_import]
    if with_api:
        lines.append(f"import api from '../services/{ids.camel}Api';")
    if with_styles:
        lines.append(f"import '../styles/{ids.pascal}.css';")
    lines.extend([
        "",
        f"// Migrated from {source_name}",
        f"export default function {ids.pascal}() {{",
    ])
    lines.extend(body)
    lines.extend([
        "  return (",
        f"    <div className=\"{ids.slug}\" data-testid=\"{ids.slug}-container\">",
    ])
    if jsx.strip():
        lines.append(textwrap.indent(jsx, "      ").rstrip("\n"))
    lines.extend([
        "    </div>",
        "  );",
        "}",
        "",
    ])
    return "\n".join(lines)


def render_stylesheet(ids: Identifiers, source_name: str, style_blocks: List[str]) -> str:
    """Generate web/src/styles/<Pascal>.css content."""
    lines = [
        f"/* Styles migrated from {source_name} */",
        f".{ids.slug} {{",
        "  display: block;",
        "}",
    ]
    for block in style_blocks:
        lines.append("")
        lines.append(textwrap.dedent(block).strip("\n"))
    lines.append("")
    return "\n".join(lines)


def named_payload(params: Sequence[str]) -> str:
    """Request parameters for positional bridge arguments; the first argument as-is when unnamed."""
    if not params:
        return "args[0]"
    return "{ " + ", ".join(f"{p}: args[{i}]" for i, p in enumerate(params)) + " }"


def render_api_bridge(routes: List[BridgeRoute]) -> str:
    """Generate web/src/services/<camel>Api.js: one method per called server function."""
    lines = [
        "import axios from 'axios';",
        "",
        "const client = axios.create({ baseURL: process.env.REACT_APP_API_URL || '' });",
        "",
        "const api = {",
    ]
    for fn, verb, path, params in routes:
        payload = named_payload(params)
        if verb == "GET":
            call = f"client.get('{path}', {{ params: {payload} }})"
        elif path.startswith("/api/rpc/"):
            call = f"client.post('{path}', {{ args }})"
        else:
            call = f"client.post('{path}', {payload})"
        lines.append(f"  {fn}: (...args) => {call}.then((res) => res.data),")
    lines.extend([
        "};",
        "",
        "export default api;",
        "",
    ])
    return "\n".join(lines)


def render_component_test(ids: Identifiers, with_api: bool) -> str:
    """Generate web/src/__tests__/<Pascal>.test.jsx content."""
    lines = [
        "import React from 'react';",
        "import { render, screen } from '@testing-library/react';",
        f"import {ids.pascal} from '../components/{ids.pascal}';",
        "",
    ]
    if with_api:
        lines.extend([
            f"jest.mock('../services/{ids.camel}Api');",
            "",
        ])
    lines.extend([
        f"describe('{ids.pascal}', () => {{",
        "  it('renders the migrated template', () => {",
        f"    render(<{ids.pascal} />);",
        f"    expect(screen.getByTestId('{ids.slug}-container')).toBeInTheDocument();",
        "  });",
        "});",
        "",
    ])
    return "\n".join(lines)
