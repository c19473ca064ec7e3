"""String templates for React Native screens, style sheets, API bridges and screen tests."""
import json
import re
import textwrap
from typing import Any, Dict, List
from migrator.generators.types import Identifiers
from migrator.generators.ui_gen.render import BridgeRoute, script_lines

COMPONENT_USE = re.compile(r"<(Image|ScrollView|Text|TextInput|TouchableOpacity|View)\b")


def _js_value(value: Any) -> str:
    if isinstance(value, str):
        return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"
    return json.dumps(value)


def render_style_object(styles: Dict[str, Dict[str, Any]], indent: str = "  ") -> List[str]:
    """Lines of a StyleSheet.create argument; keys in the given order, properties sorted."""
    lines = []
    for key, props in styles.items():
        if not props:
            lines.append(f"{indent}{key}: {{}},")
            continue
        lines.append(f"{indent}{key}: {{")
        for prop in sorted(props):
            lines.append(f"{indent}  {prop}: {_js_value(props[prop])},")
        lines.append(f"{indent}}},")
    return lines


def render_screen(ids: Identifiers, jsx: str, script: str, source_name: str,
                  styles: Dict[str, Dict[str, Any]], with_stylesheet: bool, with_api: bool) -> str:
    """Generate mobile/src/screens/<Pascal>Screen.js content."""
    used = set(COMPONENT_USE.findall(jsx)) | {"ScrollView"}
    if "Linking." in jsx:
        used.add("Linking")
    if not with_stylesheet:
        used.add("StyleSheet")
    components = sorted(used)

    body, uses_effect = script_lines(script)
    lines = [
        "import React, { useEffect } from 'react';" if uses_effect else "import React from 'react';",
        f"import {{ {', '.join(components)} }} from 'react-native';",
    ]
    if "<Picker" in jsx:
        lines.append("import { Picker } from '@react-native-picker/picker';")
    if with_stylesheet:
        lines.append(f"import styles from '../styles/{ids.camel}Styles';")
    if with_api:
        lines.append(f"import {{ handleHostCall }} from '../services/{ids.camel}Api';")
    lines.append("")
    if not with_stylesheet:
        lines.append("const styles = StyleSheet.create({")
        lines.extend(render_style_object(styles))
        lines.extend(["});", ""])

    lines.extend([
        f"// Migrated from {source_name}",
        f"export default function {ids.pascal}Screen() {{",
    ])
    lines.extend(body)
    lines.extend([
        "  return (",
        f"    <ScrollView style={{styles.container}} testID=\"{ids.slug}-screen\">",
    ])
    if jsx.strip():
        lines.append(textwrap.indent(jsx, "      ").rstrip("\n"))
    lines.extend([
        "    </ScrollView>",
        "  );",
        "}",
        "",
    ])
    return "\n".join(lines)


def render_stylesheet(source_name: str, styles: Dict[str, Dict[str, Any]]) -> str:
    """Generate mobile/src/styles/<camel>Styles.js content."""
    lines = [
        "import { StyleSheet } from 'react-native';",
        "",
        f"// Styles migrated from {source_name}",
        "export default StyleSheet.create({",
    ]
    lines.extend(render_style_object(styles))
    lines.extend(["});", ""])
    return "\n".join(lines)


def render_api_bridge(routes: List[BridgeRoute]) -> str:
    """Generate mobile/src/services/<camel>Api.js: ``handleHostCall`` dispatches by function name."""
    lines = [
        "import axios from 'axios';",
        "",
        "const client = axios.create({ baseURL: process.env.EXPO_PUBLIC_API_URL || '' });",
        "",
        "const routes = {",
    ]
    for fn, verb, path, params in routes:
        rpc = "true" if path.startswith("/api/rpc/") else "false"
        names = ", ".join(f"'{p}'" for p in params)
        named = f", params: [{names}]" if params else ""
        lines.append(f"  {fn}: {{ method: '{verb.lower()}', path: '{path}', rpc: {rpc}{named} }},")
    lines.extend([
        "};",
        "",
        "export async function handleHostCall(name, args) {",
        "  const route = routes[name];",
        "  if (!route) {",
        "    throw new Error(`Unknown server function: ${name}`);",
        "  }",
        "  const payload = route.params",
        "    ? Object.fromEntries(route.params.map((param, i) => [param, args[i]]))",
        "    : args[0];",
        "  const res = route.method === 'get'",
        "    ? await client.get(route.path, { params: payload })",
        "    : await client.post(route.path, route.rpc ? { args } : payload);",
        "  return res.data;",
        "}",
        "",
    ])
    return "\n".join(lines)


def render_screen_test(ids: Identifiers, with_api: bool) -> str:
    """Generate mobile/src/__tests__/<Pascal>Screen.test.js content."""
    lines = [
        "import React from 'react';",
        "import { render } from '@testing-library/react-native';",
        f"import {ids.pascal}Screen from '../screens/{ids.pascal}Screen';",
        "",
    ]
    if with_api:
        lines.extend([f"jest.mock('../services/{ids.camel}Api');", ""])
    lines.extend([
        f"describe('{ids.pascal}Screen', () => {{",
        "  it('renders the migrated template', () => {",
        f"    const {{ getByTestId }} = render(<{ids.pascal}Screen />);",
        f"    expect(getByTestId('{ids.slug}-screen')).toBeTruthy();",
        "  });",
        "});",
        "",
    ])
    return "\n".join(lines)
