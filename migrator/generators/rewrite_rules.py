"""
Ordered pattern -> replacement tables that translate Apps Script idioms into
target idioms.

Processing order and confluence
-------------------------------
A table applies its rules in declared order. Each rule is re-applied until it
stops matching, then the next rule runs; whole passes repeat until a pass
changes nothing (fixed point). Rules whose matches are disjoint commute, so
their relative order does not change the output. Where two rules can match
overlapping text, the more specific rule is declared first and the declared
order is the processing order, e.g. ``json_text_response`` (the whole
``return ContentService.createTextOutput(JSON.stringify(x))`` statement) runs
before ``text_response``, and ``scriptlet_force_print`` (``<?!= ?>``) runs
before ``scriptlet_code`` (``<? ?>``). No replacement may re-create text its
own pattern matches; a rule that does is reported as ``RewriteDivergence``.
"""
import hashlib
import re
from dataclasses import dataclass
from typing import Callable, List, Pattern, Tuple, Union
from migrator.core.errors import RewriteDivergence

Replacement = Union[str, Callable[["re.Match"], str]]

# Call arguments with at most one level of nested parentheses
ARGS = r"((?:[^()]|\([^()]*\))*)"

# One attribute-ish chunk inside a start tag: quoted value, JSX expression
# (one level of nested braces) or any other non-closing character.
ATTR_CHUNK = r"""(?:"[^"]*"|'[^']*'|\{(?:[^{}]|\{[^{}]*\})*\}|[^'"{}>])"""

# Receiver of a sheet call: a name or an awaited handle, then .member / .member(args)
# links; the lookbehind keeps it from starting inside another expression.
RECEIVER = (
    r"((?<![\w$.)])(?:\(await [^()]*(?:\([^()]*\))?\)|[\w$]+)"
    r"(?:\s*\.\s*[\w$]+(?:\((?:[^()]|\([^()]*\))*\))?)*?)\s*"
)

HOST_SERVICES = (
    "SpreadsheetApp", "DriveApp", "DocumentApp", "FormApp", "GmailApp", "MailApp",
    "CalendarApp", "SlidesApp", "ContentService", "HtmlService", "PropertiesService",
    "CacheService", "LockService", "ScriptApp", "UrlFetchApp", "Utilities", "Logger",
    "Session", "Browser", "SitesApp", "GroupsApp", "LanguageApp", "Maps", "XmlService",
    "Jdbc", "CardService",
)
HOST_SERVICE_CALL = re.compile(r"\b(" + "|".join(HOST_SERVICES) + r")\s*\.\s*(\w+)")
HOST_CALLBACK_CALL = re.compile(r"\bgoogle\s*\.\s*script\s*\.\s*(\w+)(?:\s*\.\s*(\w+))?")


@dataclass(frozen=True)
class RewriteRule:
    name: str
    pattern: Pattern
    replacement: Replacement
    description: str = ""


def rule(name: str, pattern: str, replacement: Replacement, description: str = "", flags: int = 0) -> RewriteRule:
    return RewriteRule(name=name, pattern=re.compile(pattern, flags), replacement=replacement, description=description)


class RewriteRuleTable:
    """An ordered, named list of rewrite rules applied to a fixed point."""

    def __init__(self, name: str, rules: List[RewriteRule], max_passes: int = 8):
        names = [r.name for r in rules]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate rule names in table '{name}': {', '.join(duplicates)}")
        self.name = name
        self.rules = list(rules)
        self.max_passes = max_passes

    def __len__(self) -> int:
        return len(self.rules)

    def _apply_rule(self, r: RewriteRule, text: str) -> str:
        for _ in range(self.max_passes):
            text, count = r.pattern.subn(r.replacement, text)
            if count == 0:
                return text
        raise RewriteDivergence(f"{self.name}:{r.name}", self.max_passes)

    def apply(self, text: str) -> str:
        """Rewrite ``text`` until no rule matches."""
        current = text
        for _ in range(self.max_passes):
            before = current
            for r in self.rules:
                current = self._apply_rule(r, current)
            if current == before:
                return current
        raise RewriteDivergence(self.name, self.max_passes)

    def matching_rules(self, text: str) -> List[str]:
        """Names of the rules whose pattern matches ``text``, in processing order."""
        return [r.name for r in self.rules if r.pattern.search(text)]

    def describe(self) -> List[Tuple[str, str, str]]:
        return [(r.name, r.pattern.pattern, r.description) for r in self.rules]

    def extended(self, name: str, rules: List[RewriteRule]) -> "RewriteRuleTable":
        """A new table running this table's rules first, then ``rules``."""
        return RewriteRuleTable(name, self.rules + list(rules), self.max_passes)


def find_unmapped_host_calls(text: str, pattern: Pattern = HOST_SERVICE_CALL) -> List[str]:
    """Host constructs left in ``text`` after rewriting, as 'Namespace.member'."""
    found = set()
    for m in pattern.finditer(text):
        found.add(".".join(g for g in m.groups() if g))
    return sorted(found)


# --- CSS helpers shared by the markup tables ---------------------------------

def css_declarations(css: str) -> List[Tuple[str, str]]:
    """Split 'a: b; c-d: e' into [('a', 'b'), ('c-d', 'e')], skipping empty or broken parts."""
    declarations = []
    for part in css.split(";"):
        if ":" not in part:
            continue
        prop, value = part.split(":", 1)
        prop, value = prop.strip().lower(), value.strip()
        if prop and value:
            declarations.append((prop, value))
    return declarations


def css_property_to_camel(prop: str) -> str:
    """background-color -> backgroundColor"""
    return re.sub(r"-([a-z])", lambda m: m.group(1).upper(), prop)


def _js_string(value: str) -> str:
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


def inline_style_key(css: str) -> str:
    """Stable stylesheet key for an inline style string."""
    digest = hashlib.sha1(css.strip().encode("utf-8")).hexdigest()[:8]
    return f"inline_{digest}"


def class_style_key(class_value: str) -> str:
    """'card primary-box' -> 'card_primary_box'"""
    return re.sub(r"[^A-Za-z0-9]+", "_", class_value.strip()).strip("_") or "unnamed"


# --- Service-call rules shared by the endpoint and job tables ----------------

SHARED_SERVICE_RULES = [
    rule("spreadsheet_open_by_id", rf"SpreadsheetApp\s*\.\s*openById\({ARGS}\)", r"(await db.open(\1))",
         "Open a spreadsheet by id -> open a database handle"),
    rule("spreadsheet_open_by_url", rf"SpreadsheetApp\s*\.\s*openByUrl\({ARGS}\)", r"(await db.openByUrl(\1))"),
    rule("spreadsheet_active", r"SpreadsheetApp\s*\.\s*(?:getActiveSpreadsheet|getActive)\(\s*\)", "db.active()"),
    rule("spreadsheet_flush", r"SpreadsheetApp\s*\.\s*flush\(\s*\)", "await db.flush()"),
    rule("sheet_by_name", rf"\.getSheetByName\({ARGS}\)", r".table(\1)"),
    rule("active_sheet", r"\.getActiveSheet\(\s*\)", ".defaultTable()"),
    rule("get_range", r"\.getRange\(", ".range("),
    # Before data_range and get_values: the chained form reads every record
    rule("data_range_values", rf"{RECEIVER}\.getDataRange\(\s*\)\s*\.getValues\(\s*\)", r"(await \1.findAll())",
         "Read a whole sheet -> fetch all records"),
    rule("data_range", r"\.getDataRange\(\s*\)", ".range()"),
    rule("get_values", rf"{RECEIVER}\.getValues\(\s*\)", r"(await \1.rows())"),
    rule("set_values", rf"{RECEIVER}\.setValues\({ARGS}\)", r"await \1.update(\2)"),
    rule("append_row", rf"{RECEIVER}\.appendRow\({ARGS}\)", r"await \1.create(\2)"),
    rule("last_row", rf"{RECEIVER}\.getLastRow\(\s*\)", r"(await \1.count())"),
    rule("clear_contents", rf"{RECEIVER}\.clearContents\(\s*\)", r"await \1.truncate()"),
    rule("script_property_get", rf"PropertiesService\s*\.\s*getScriptProperties\(\s*\)\s*\.\s*getProperty\({ARGS}\)",
         r"config.get(\1)"),
    rule("script_property_set", rf"PropertiesService\s*\.\s*getScriptProperties\(\s*\)\s*\.\s*setProperty\({ARGS}\)",
         r"config.set(\1)"),
    rule("user_property_get", rf"PropertiesService\s*\.\s*getUserProperties\(\s*\)\s*\.\s*getProperty\({ARGS}\)",
         r"config.getUser(\1)"),
    rule("user_property_set", rf"PropertiesService\s*\.\s*getUserProperties\(\s*\)\s*\.\s*setProperty\({ARGS}\)",
         r"config.setUser(\1)"),
    rule("cache_get", rf"CacheService\s*\.\s*getScriptCache\(\s*\)\s*\.\s*get\({ARGS}\)", r"(await cache.get(\1))"),
    rule("cache_put", rf"CacheService\s*\.\s*getScriptCache\(\s*\)\s*\.\s*put\({ARGS}\)", r"await cache.set(\1)"),
    rule("cache_remove", rf"CacheService\s*\.\s*getScriptCache\(\s*\)\s*\.\s*remove\({ARGS}\)", r"await cache.del(\1)"),
    # Before url_fetch: the response body accessor folds into the call
    rule("url_fetch_text", rf"UrlFetchApp\s*\.\s*fetch\({ARGS}\)\s*\.\s*getContentText\(\s*\)", r"(await axios(\1)).data"),
    rule("url_fetch", rf"UrlFetchApp\s*\.\s*fetch\({ARGS}\)", r"(await axios(\1))"),
    rule("send_email", rf"(?:MailApp|GmailApp)\s*\.\s*sendEmail\({ARGS}\)", r"await mailer.sendMail(\1)"),
    rule("logger_log", r"Logger\s*\.\s*log\(", "console.log("),
    rule("uuid", r"Utilities\s*\.\s*getUuid\(\s*\)", "crypto.randomUUID()"),
    rule("sleep", rf"Utilities\s*\.\s*sleep\({ARGS}\)", r"await new Promise((resolve) => setTimeout(resolve, \1))"),
    rule("base64_encode", rf"Utilities\s*\.\s*base64Encode\({ARGS}\)", r"Buffer.from(\1).toString('base64')"),
    rule("active_user_email", r"Session\s*\.\s*getActiveUser\(\s*\)\s*\.\s*getEmail\(\s*\)", "currentUserEmail()"),
    rule("script_time_zone", r"Session\s*\.\s*getScriptTimeZone\(\s*\)", "process.env.TZ"),
]


# --- Endpoint (Express) -------------------------------------------------------

REQUEST_RULES = [
    # Before text_response: the JSON form becomes res.json
    rule("json_text_response",
         rf"return\s+ContentService\s*\.\s*createTextOutput\(\s*JSON\.stringify\({ARGS}\)\s*\)(?:\s*\.\s*setMimeType\({ARGS}\))?",
         r"return res.json(\1)",
         "Return JSON text output -> res.json"),
    rule("text_response",
         rf"return\s+ContentService\s*\.\s*createTextOutput\({ARGS}\)(?:\s*\.\s*setMimeType\({ARGS}\))?",
         r"return res.send(\1)"),
    rule("html_response",
         rf"HtmlService\s*\.\s*(?:createHtmlOutputFromFile|createTemplateFromFile)\({ARGS}\)(?:\s*\.\s*evaluate\(\s*\))?",
         r"res.render(\1)"),
    rule("mime_type_json", r"ContentService\s*\.\s*MimeType\s*\.\s*JSON", "'application/json'"),
    # Before post_data: JSON.parse of the raw body is the parsed body
    rule("post_json_body", r"JSON\.parse\(\s*e\.postData\.contents\s*\)", "req.body"),
    rule("post_contents", r"\be\.postData\.contents\b", "req.rawBody"),
    rule("post_data", r"\be\.postData\b", "req.body"),
    # Before parameter_map: named field access
    rule("parameter_field", r"\be\.parameter\.(\w+)", r"params.\1"),
    rule("parameters_map", r"\be\.parameters\b", "params"),
    rule("parameter_map", r"\be\.parameter\b", "params"),
    rule("query_string", r"\be\.queryString\b", "req.query"),
    rule("context_path", r"\be\.contextPath\b", "req.baseUrl"),
]

ENDPOINT_RULES = RewriteRuleTable("endpoint", REQUEST_RULES + SHARED_SERVICE_RULES)

# Service rules whose replacement suspends
AWAITING_RULES = [r for r in SHARED_SERVICE_RULES if isinstance(r.replacement, str) and "await " in r.replacement]


def introduces_await(text: str) -> bool:
    """True when the migrated form of ``text`` awaits something."""
    return bool(re.search(r"\bawait\b", text)) or any(r.pattern.search(text) for r in AWAITING_RULES)


# --- Job (BullMQ) -------------------------------------------------------------

EVENT_RULES = [
    rule("event_field",
         r"\be\.(range|source|value|oldValue|user|authMode|namedValues|values|triggerUid|changeType)\b",
         r"this.data.\1",
         "Trigger event object fields -> job payload fields"),
]

JOB_RULES = RewriteRuleTable("job", EVENT_RULES + SHARED_SERVICE_RULES)


# --- Markup rules shared by the browser and native tables ---------------------

SCRIPTLET_RULES = [
    rule("html_comment", r"<!--(.*?)-->", r"{/*\1*/}", flags=re.DOTALL),
    # Before scriptlet_force_print: include() pulls in another template
    rule("scriptlet_include", r"<\?!=\s*include\(\s*['\"]([^'\"]+)['\"]\s*\)\s*;?\s*\?>", r"{/* include: \1 */}"),
    rule("scriptlet_force_print", r"<\?!=\s*(.+?)\s*;?\s*\?>", r"{\1}", flags=re.DOTALL),
    rule("scriptlet_print", r"<\?=\s*(.+?)\s*;?\s*\?>", r"{\1}", flags=re.DOTALL),
    # Last: matches any scriptlet the printing forms above left behind
    rule("scriptlet_code", r"<\?\s*(.+?)\s*\?>", r"{/* \1 */}", flags=re.DOTALL),
]

HANDLER = r"([\w$.]+|function\s*\([^()]*\)\s*\{(?:[^{}]|\{[^{}]*\})*\}|\([^()]*\)\s*=>\s*\{(?:[^{}]|\{[^{}]*\})*\})"
RUN = r"google\s*\.\s*script\s*\.\s*run\s*"


def _host_call_rules(call: Callable[[str, str], str]) -> List[RewriteRule]:
    """google.script.run chains, most specific first. ``call(fn, args)`` renders the target call."""
    return [
        rule("host_call_success_failure",
             rf"{RUN}\.\s*withSuccessHandler\({HANDLER}\)\s*\.\s*withFailureHandler\({HANDLER}\)\s*\.\s*(\w+)\({ARGS}\)",
             lambda m: f"{call(m.group(3), m.group(4))}.then({m.group(1)}).catch({m.group(2)})"),
        rule("host_call_failure_success",
             rf"{RUN}\.\s*withFailureHandler\({HANDLER}\)\s*\.\s*withSuccessHandler\({HANDLER}\)\s*\.\s*(\w+)\({ARGS}\)",
             lambda m: f"{call(m.group(3), m.group(4))}.then({m.group(2)}).catch({m.group(1)})"),
        rule("host_call_success",
             rf"{RUN}\.\s*withSuccessHandler\({HANDLER}\)\s*\.\s*(\w+)\({ARGS}\)",
             lambda m: f"{call(m.group(2), m.group(3))}.then({m.group(1)})"),
        rule("host_call_failure",
             rf"{RUN}\.\s*withFailureHandler\({HANDLER}\)\s*\.\s*(\w+)\({ARGS}\)",
             lambda m: f"{call(m.group(2), m.group(3))}.catch({m.group(1)})"),
        # Last: a bare call; handler-configuring methods are never a server function
        rule("host_call",
             rf"{RUN}\.\s*(?!with(?:Success|Failure)Handler\b|withUserObject\b)(\w+)\({ARGS}\)",
             lambda m: call(m.group(1), m.group(2))),
        rule("host_close", r"google\s*\.\s*script\s*\.\s*host\s*\.\s*close\(\s*\)", "window.close()"),
        rule("host_history", r"google\s*\.\s*script\s*\.\s*history\b", "window.history"),
    ]


def _void_tag_rule(tags: str) -> RewriteRule:
    return rule("self_closing_void",
                rf"<({tags})\b({ATTR_CHUNK}*?)\s*(?<!/)>",
                r"<\1\2 />",
                "Void elements must be closed in JSX")


# --- Browser UI (React) -------------------------------------------------------

JSX_EVENTS = {
    "click": "onClick", "dblclick": "onDoubleClick", "change": "onChange", "input": "onInput",
    "submit": "onSubmit", "load": "onLoad", "focus": "onFocus", "blur": "onBlur",
    "keyup": "onKeyUp", "keydown": "onKeyDown", "keypress": "onKeyPress",
    "mouseover": "onMouseOver", "mouseout": "onMouseOut",
}

JSX_ATTRIBUTES = {
    "tabindex": "tabIndex", "maxlength": "maxLength", "readonly": "readOnly",
    "colspan": "colSpan", "rowspan": "rowSpan", "autocomplete": "autoComplete",
    "autofocus": "autoFocus", "enctype": "encType", "contenteditable": "contentEditable",
}


def _jsx_event(m: "re.Match") -> str:
    return f"{JSX_EVENTS[m.group(1).lower()]}={{() => {{ {m.group(2).strip()} }}}}"


def _jsx_style(m: "re.Match") -> str:
    pairs = [f"{css_property_to_camel(p)}: {_js_string(v)}" for p, v in css_declarations(m.group(1))]
    return "style={{ " + ", ".join(pairs) + " }}"


def _browser_call(fn: str, args: str) -> str:
    return f"api.{fn}({args.strip()})"


BROWSER_HOST_RULES = _host_call_rules(_browser_call)

UI_MARKUP_RULES = RewriteRuleTable("ui-markup", SCRIPTLET_RULES + BROWSER_HOST_RULES + [
    # Before the attribute rules: start tags still only hold quoted values
    _void_tag_rule("img|br|hr|input|meta|link|area|base|col|source|wbr"),
    rule("class_attribute", r"(?<![\w-])class=", "className="),
    rule("for_attribute", r"(?<![\w-])for=", "htmlFor="),
    rule("event_attribute", r"(?<![\w-])on(" + "|".join(JSX_EVENTS) + r")=\"([^\"]*)\"", _jsx_event,
         flags=re.IGNORECASE),
    rule("camel_attribute", r"(?<![\w-])(" + "|".join(JSX_ATTRIBUTES) + r")=",
         lambda m: f"{JSX_ATTRIBUTES[m.group(1)]}="),
    rule("inline_style", r"(?<![\w-])style=\"([^\"]*)\"", _jsx_style),
])

UI_SCRIPT_RULES = RewriteRuleTable("ui-script", BROWSER_HOST_RULES)


# --- Native UI (React Native) -------------------------------------------------

NATIVE_COMPONENTS = {
    "div": "View", "span": "Text", "p": "Text", "h1": "Text", "h2": "Text", "h3": "Text",
    "h4": "Text", "h5": "Text", "h6": "Text", "strong": "Text", "em": "Text", "b": "Text",
    "i": "Text", "small": "Text", "label": "Text", "button": "TouchableOpacity",
    "a": "TouchableOpacity", "input": "TextInput", "textarea": "TextInput", "select": "Picker",
    "option": "Picker.Item", "img": "Image", "form": "View", "ul": "ScrollView", "ol": "ScrollView",
    "li": "View", "table": "ScrollView", "thead": "View", "tbody": "View", "tr": "View",
    "th": "Text", "td": "Text", "section": "View", "header": "View", "footer": "View",
    "nav": "View", "article": "View", "main": "View", "aside": "View",
}
UNMAPPABLE_NATIVE_ELEMENTS = {"iframe", "canvas", "video", "audio", "object", "embed"}

NATIVE_EVENTS = {
    "click": "onPress", "dblclick": "onLongPress", "change": "onChangeText", "input": "onChangeText",
    "submit": "onSubmitEditing", "focus": "onFocus", "blur": "onBlur", "keypress": "onKeyPress",
    "keyup": "onKeyPress", "keydown": "onKeyPress", "load": "onLayout",
}


def _native_tag(m: "re.Match") -> str:
    return f"<{m.group(1)}{NATIVE_COMPONENTS.get(m.group(2).lower(), 'View')}"


def _native_event(m: "re.Match") -> str:
    return f"{NATIVE_EVENTS[m.group(1).lower()]}={{() => {{ {m.group(2).strip()} }}}}"


def _native_call(fn: str, args: str) -> str:
    return f"handleHostCall('{fn}', [{args.strip()}])"


NATIVE_HOST_RULES = _host_call_rules(_native_call)

MOBILE_MARKUP_RULES = RewriteRuleTable("mobile-markup", SCRIPTLET_RULES + NATIVE_HOST_RULES + [
    rule("line_break", r"<br\b[^>]*>", "{'\\n'}"),
    # Before native_tag: start tags still only hold quoted values
    _void_tag_rule("img|input|hr|meta|link|area|base|col|source|wbr"),
    rule("native_tag", r"<(/?)([a-z][a-z0-9-]*)(?=[\s/>])", _native_tag,
         "HTML element -> native component; unknown elements become View"),
    rule("class_style", r"(?<![\w-])class=\"([^\"]*)\"", lambda m: f"style={{styles.{class_style_key(m.group(1))}}}"),
    rule("inline_style_ref", r"(?<![\w-])style=\"([^\"]*)\"", lambda m: f"style={{styles.{inline_style_key(m.group(1))}}}"),
    rule("link_href", r"(?<![\w-])href=\"([^\"]*)\"", lambda m: f"onPress={{() => Linking.openURL({_js_string(m.group(1))})}}"),
    rule("label_for", r"\s(?<![\w-])for=\"[^\"]*\"", ""),
    rule("element_id", r"(?<![\w-])id=", "testID="),
    rule("event_attribute", r"(?<![\w-])on(" + "|".join(NATIVE_EVENTS) + r")=\"([^\"]*)\"", _native_event,
         flags=re.IGNORECASE),
])

MOBILE_SCRIPT_RULES = RewriteRuleTable("mobile-script", NATIVE_HOST_RULES)
