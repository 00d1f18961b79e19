"""
Forms for a minimal blog: post schema, validated inputs, CLI helpers.

    flask --app quill.blog attrs slug title
    flask --app quill.blog hint slug --hint "Lowercase letters, numbers, and hyphens only"
"""

import json
import os
import re
import secrets
from datetime import date, datetime, time
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

import click
from flask import Flask, flash, render_template_string
from markupsafe import Markup

from quill.changeset import TRUTHY, Changeset, FieldType
from quill.validation import (
    field_attrs,
    merge_attrs,
    normalize_attrs,
    validation_hint,
)

################################################################################
# Imports & constants
################################################################################

ROOT = Path(__file__).parent
SECRET_FILE = ROOT / ".secret_key"
SECRET_KEY = os.environ.get("QUILL_SECRET_KEY") or (
    SECRET_FILE.read_text().strip() if SECRET_FILE.exists() else secrets.token_hex(32)
)

try:
    __version__ = version("quill")
except PackageNotFoundError:
    __version__ = "0.1.0-dev"


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() not in {"0", "false", "off", "no", ""}


################################################################################
# App
################################################################################
app = Flask(__name__)
app.config.update(
    SECRET_KEY=SECRET_KEY,
    SITE_NAME=os.environ.get("QUILL_SITE_NAME", "quill"),
    # derive required/pattern/minlength/… from changesets when rendering inputs
    QUILL_CLIENT_VALIDATION=_env_flag("QUILL_CLIENT_VALIDATION", True),
)


################################################################################
# Posts
################################################################################
POST_TYPES = {
    "title": FieldType.STRING,
    "slug": FieldType.STRING,
    "description": FieldType.STRING,
    "body": FieldType.STRING,
    "published_at": FieldType.DATE,
    "draft": FieldType.BOOLEAN,
}
POST_REQUIRED = ["title", "slug", "description", "body", "published_at"]
SLUG_RE = re.compile(r"^[a-z0-9-]+$")
SLUG_HINT = "Lowercase letters, numbers, and hyphens only"


def post_changeset(post: dict | None = None, params: dict | None = None) -> Changeset:
    """Cast *params* onto *post* and declare every post validation."""
    return (
        Changeset.cast(post or {}, params or {}, POST_TYPES, types=POST_TYPES)
        .validate_required(POST_REQUIRED)
        .validate_length("title", min=3, max=255)
        .validate_length("slug", min=3, max=255)
        .validate_format(
            "slug", SLUG_RE, message="must be lowercase letters, numbers, and hyphens only"
        )
        .validate_length("description", min=10, max=500)
        .validate_length("body", min=10)
    )


################################################################################
# Form inputs
################################################################################
def _html_attrs(attrs: dict) -> Markup:
    """`{"required": True, "maxlength": 9}` → ` required maxlength="9"`."""
    out = Markup("")
    for key, value in attrs.items():
        if value is None or value is False:
            continue
        if value is True:
            out += Markup(" {}").format(key)
        else:
            out += Markup(' {}="{}"').format(key, value)
    return out


def _input_value(input_type: str, value) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        if input_type == "datetime-local":
            return value.strftime("%Y-%m-%dT%H:%M")
        return value.isoformat()
    if isinstance(value, time):
        return value.isoformat(timespec="minutes")
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def _options(options) -> list[tuple[str, str]]:
    pairs = []
    for opt in options or ():
        if isinstance(opt, (list, tuple)):
            label, value = opt
        else:
            label = value = opt
        pairs.append((str(label), str(value)))
    return pairs


DEFAULT_CLASSES = {
    "checkbox": "form-checkbox",
    "textarea": "form-textarea",
    "select": "form-select",
}


def form_input(
    changeset: Changeset,
    field: str,
    *,
    type: str | None = None,
    label: str | None = None,
    hint: str | None = None,
    value=None,
    errors=None,
    options=None,
    prompt: str | None = None,
    **rest,
) -> Markup:
    """
    Render one labelled form control for *field*.

    Attributes passed by the template author (``rest``) always beat the ones
    derived from the changeset; ``required=False`` therefore switches off a
    derived ``required``.
    """
    if app.config.get("QUILL_CLIENT_VALIDATION", True):
        derived = field_attrs(changeset, field)
    else:
        app.logger.debug("client validation off – %s rendered without derived attrs", field)
        derived = {}

    # `class_` lets Python callers spell the reserved word
    rest = {key.rstrip("_"): val for key, val in rest.items()}
    attrs = normalize_attrs(merge_attrs(rest, derived))

    derived_type = attrs.pop("type", None)
    input_type = type or derived_type or "text"
    css = attrs.pop("class", None) or DEFAULT_CLASSES.get(input_type, "form-input")
    dom_id = attrs.pop("id", field)
    name = attrs.pop("name", field)

    if value is None:
        value = changeset.get_field(field)
    if errors is None:
        errors = changeset.errors.get(field, ()) if changeset.action else ()

    return Markup(
        render_template_string(
            TEMPL_INPUT,
            input_type=input_type,
            id=dom_id,
            name=name,
            css=css,
            label=label,
            required=attrs.get("required") is True,
            disabled=attrs.get("disabled") is True,
            attrs=_html_attrs(attrs),
            value=_input_value(input_type, value),
            checked=value is True or str(value).strip().lower() in TRUTHY,
            options=_options(options),
            prompt=prompt,
            hint=validation_hint(attrs, hint),
            errors=list(errors),
        )
    )


TEMPL_INPUT = """
<div class="form-field">
{%- if input_type == "checkbox" %}
  <label class="checkbox-label">
    <input type="hidden" name="{{ name }}" value="false"{% if disabled %} disabled{% endif %}>
    <input type="checkbox" id="{{ id }}" name="{{ name }}" value="true"{% if checked %} checked{% endif %} class="{{ css }}"{{ attrs }}>
    <span class="checkbox-label-text">{{ label }}</span>
  </label>
{%- else %}
  <label>
    {%- if label %}
    <span class="form-label">{{ label }}
      {%- if required %} <span class="form-required-marker" aria-label="required">*</span>{% endif -%}
    </span>
    {%- endif %}
    {%- set cls = css ~ (' form-input-error' if errors else '') %}
    {%- if input_type == "textarea" %}
    <textarea id="{{ id }}" name="{{ name }}" class="{{ cls }}"{{ attrs }}>{{ value }}</textarea>
    {%- elif input_type == "select" %}
    <select id="{{ id }}" name="{{ name }}" class="{{ cls }}"{{ attrs }}>
      {%- if prompt %}<option value="">{{ prompt }}</option>{% endif %}
      {%- for opt_label, opt_value in options %}
      <option value="{{ opt_value }}"{% if opt_value == value %} selected{% endif %}>{{ opt_label }}</option>
      {%- endfor %}
    </select>
    {%- else %}
    <input type="{{ input_type }}" id="{{ id }}" name="{{ name }}" value="{{ value }}" class="{{ cls }}"{{ attrs }}>
    {%- endif %}
  </label>
  {%- if hint and input_type != "select" %}
  <p class="form-hint">{{ hint }}</p>
  {%- endif %}
{%- endif %}
{%- for msg in errors %}
  <p class="form-error"><span aria-hidden="true">⚠</span> {{ msg }}</p>
{%- endfor %}
</div>
"""

# Expose helpers to templates
app.jinja_env.globals.update(input=form_input, validation_hint=validation_hint)
app.jinja_env.globals["version"] = __version__


################################################################################
# Templates
################################################################################
def wrap(body: str) -> str:
    """Glue prolog + page-specific body + epilog."""
    return TEMPL_PROLOG + body + TEMPL_EPILOG


TEMPL_PROLOG = """
<!doctype html>
<html lang="en">
<title>{{ title or config.SITE_NAME }}</title>
<meta name="viewport" content="width=device-width, initial-scale=1">
<meta charset="utf-8">
<style>
.form-field{margin-bottom:1.25rem}.form-label{display:block;font-weight:600;margin-bottom:.35rem}
.form-required-marker{color:#e5534b;margin-left:.15em}
.form-input,.form-textarea,.form-select{width:100%;padding:6px 10px;border:1px solid #555;border-radius:4px;box-sizing:border-box}
.form-input:invalid:not(:placeholder-shown),.form-textarea:invalid:not(:placeholder-shown){border-color:#e5534b}
.form-input-error{border-color:#e5534b}
.form-hint{margin:.35rem 0 0;font-size:.8em;color:#888}
.form-error{margin:.35rem 0 0;font-size:.85em;color:#e5534b}
</style>
<body>
    {% with msgs = get_flashed_messages() %}
    {% if msgs %}
        <div role="status" aria-live="polite" aria-atomic="true" class="flash">
        {%- for msg in msgs %}
        <p>{{ msg }}</p>
        {%- endfor %}
        </div>
    {% endif %}
    {% endwith %}
    <main id="main-content" role="main" tabindex="-1">
"""

TEMPL_EPILOG = """
    </main>
    <footer style="margin-top:1.875em;font-size:.8em;color:#888;">
        {{ config.SITE_NAME }} <span>v{{ version }}</span>
    </footer>
</body>
</html>
"""

TEMPL_POST_FORM = wrap("""
<form method="post" action="{{ action_url }}">
  {% if csrf %}<input type="hidden" name="csrf" value="{{ csrf }}">{% endif %}
  {{ input(changeset, "title", label="Title") }}
  {{ input(changeset, "slug", label="Slug", hint=slug_hint) }}
  {{ input(changeset, "description", type="textarea", label="Description", rows=3) }}
  {{ input(changeset, "body", type="textarea", label="Body", rows=12) }}
  {{ input(changeset, "published_at", label="Publish date") }}
  {{ input(changeset, "draft", label="Draft") }}
  <button type="submit">{{ submit_label }}</button>
</form>
""")


def render_post_form(
    changeset: Changeset,
    *,
    action_url: str,
    submit_label: str = "Save post",
    csrf: str | None = None,
) -> str:
    """
    Full page with the post form.  Needs a request context (flash messages).
    A submitted changeset with errors also flashes a summary line.
    """
    if changeset.action and not changeset.valid:
        flash("Oops, something went wrong! Please check the errors below.")
    return render_template_string(
        TEMPL_POST_FORM,
        changeset=changeset,
        action_url=action_url,
        submit_label=submit_label,
        csrf=csrf,
        slug_hint=SLUG_HINT,
    )


################################################################################
# CLI – inspect derived attributes
################################################################################
def _check_fields(fields) -> None:
    unknown = [f for f in fields if f not in POST_TYPES]
    if unknown:
        raise click.BadParameter(
            f"unknown post field(s): {', '.join(unknown)}", param_hint="FIELD"
        )


@app.cli.command("attrs")
@click.argument("fields", nargs=-1)
def cli_attrs(fields: tuple[str, ...]):
    """Print the HTML5 attributes the post form derives, as JSON."""
    fields = fields or tuple(POST_TYPES)
    _check_fields(fields)
    cs = post_changeset()
    out = {f: field_attrs(cs, f) for f in fields}
    app.logger.info("derived attributes for %d post field(s)", len(out))
    click.echo(json.dumps(out, indent=2, ensure_ascii=False, default=str))


@app.cli.command("hint")
@click.argument("field")
@click.option("--hint", "custom", default=None, help="Text shown before the length hint.")
def cli_hint(field: str, custom: str | None):
    """Print the helper text shown under a post form field."""
    _check_fields([field])
    text = validation_hint(field_attrs(post_changeset(), field), custom)
    if text is None:
        click.secho("(no hint)", fg="yellow")
    else:
        click.echo(text)
