from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, TypeVar

import pydantic

from loco_common.errors import LocoError
from loco_mcp.client import ApiResult, LocoClient, ParsedJson, RawText, encode_path_segment
from loco_mcp.models import (
    Asset,
    BatchTranslateInput,
    CreateAssetInput,
    ExportLocaleInput,
    GetTranslationsInput,
    ListAssetsInput,
    ListLocalesInput,
    Locale,
    TranslateInput,
)
from loco_mcp.registry import loco_tool

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=pydantic.BaseModel)

EMPTY_PLACEHOLDER = "(empty)"
NO_ASSETS = "No assets found."
DEFAULT_EXPORT_FORMAT = "json"


# ---------------------------------------------------------------------------
# Rendering helpers
# ---------------------------------------------------------------------------


def pretty_json(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False)


def render_result(result: ApiResult) -> str:
    """Structured results are pretty-printed, raw text is returned verbatim."""
    if isinstance(result, RawText):
        return result.text
    return pretty_json(result.value)


def _expect_list(result: ApiResult, what: str) -> list:
    if isinstance(result, ParsedJson) and isinstance(result.value, list):
        return result.value
    raise LocoError(f"Unexpected {what} response from Loco API: {render_result(result)[:200]}")


def _parse_items(model: type[ModelT], result: ApiResult, what: str) -> list[ModelT]:
    items = _expect_list(result, what)
    try:
        return [model.model_validate(x) for x in items]
    except pydantic.ValidationError as e:
        raise LocoError(
            f"Unexpected {what} response from Loco API: {e.error_count()} malformed item(s)",
            details={"errors": e.errors(include_url=False, include_context=False, include_input=False)},
        ) from e


# ---------------------------------------------------------------------------
# Request builders
# ---------------------------------------------------------------------------


def asset_body(
    asset_id: str,
    *,
    text: str | None = None,
    type: str | None = None,
    context: str | None = None,
    notes: str | None = None,
) -> dict[str, str]:
    """Asset creation payload; optional fields are only present when given."""
    body = {"id": asset_id}
    if text:
        body["text"] = text
    if type:
        body["type"] = type
    if context:
        body["context"] = context
    if notes:
        body["notes"] = notes
    return body


def translation_endpoint(asset_id: str, locale: str) -> str:
    return f"/translations/{encode_path_segment(asset_id)}/{encode_path_segment(locale)}"


def create_asset_request(client: LocoClient, body: Mapping[str, str]) -> ApiResult:
    return client.call("/assets", method="POST", body=json.dumps(body, ensure_ascii=False))


def write_translation(client: LocoClient, asset_id: str, locale: str, text: str) -> ApiResult:
    # Loco takes the bare translation string as the POST body, not a JSON envelope.
    return client.call(translation_endpoint(asset_id, locale), method="POST", body=text, raw_body=True)


# ---------------------------------------------------------------------------
# Batch workflow
# ---------------------------------------------------------------------------


@dataclass
class BatchStep:
    locale: str
    text: str
    ok: bool
    error: LocoError | None = None


@dataclass
class BatchOutcome:
    asset_id: str
    source_text: str
    steps: list[BatchStep] = field(default_factory=list)

    @property
    def committed(self) -> list[str]:
        return [s.locale for s in self.steps if s.ok]

    @property
    def failed(self) -> BatchStep | None:
        return next((s for s in self.steps if not s.ok), None)


def run_batch_translate(
    client: LocoClient,
    asset_id: str,
    source_text: str,
    translations: Mapping[str, str],
    *,
    context: str | None = None,
) -> BatchOutcome:
    """
    Create ``asset_id`` then write each translation in mapping order, one at a time.

    Not atomic. A failing asset creation raises; a failing locale write is
    recorded as the last step and no further locales are attempted.
    """
    create_asset_request(client, asset_body(asset_id, text=source_text, context=context))

    outcome = BatchOutcome(asset_id=asset_id, source_text=source_text)
    for locale, text in translations.items():
        try:
            write_translation(client, asset_id, locale, text)
        except LocoError as e:
            outcome.steps.append(BatchStep(locale=locale, text=text, ok=False, error=e))
            break
        outcome.steps.append(BatchStep(locale=locale, text=text, ok=True))
    return outcome


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


@loco_tool(
    "list_locales",
    description="List all locales configured in the localise.biz project",
    input_model=ListLocalesInput,
)
def list_locales(client: LocoClient, args: ListLocalesInput) -> str:
    locales = _parse_items(Locale, client.call("/locales"), "locales")
    lines = "\n".join(f"{loc.code} — {loc.name}" for loc in locales)
    return f"Locales ({len(locales)}):\n{lines}"


@loco_tool(
    "list_assets",
    description="List all translation keys (assets) in the project",
    input_model=ListAssetsInput,
)
def list_assets(client: LocoClient, args: ListAssetsInput) -> str:
    params = {"filter": args.filter} if args.filter else None
    assets = _parse_items(Asset, client.call("/assets", params=params), "assets")
    if not assets:
        return NO_ASSETS
    lines = "\n".join(f"• {a.id} ({a.type})" for a in assets)
    return f"Assets ({len(assets)}):\n{lines}"


@loco_tool(
    "create_asset",
    description="Create a new translation key (asset) in localise.biz",
    input_model=CreateAssetInput,
)
def create_asset(client: LocoClient, args: CreateAssetInput) -> str:
    body = asset_body(args.id, text=args.text, type=args.type, context=args.context, notes=args.notes)
    result = create_asset_request(client, body)
    return f"Asset created:\n{render_result(result)}"


@loco_tool(
    "translate",
    description="Add or update a translation for a specific key and locale",
    input_model=TranslateInput,
)
def translate(client: LocoClient, args: TranslateInput) -> str:
    result = write_translation(client, args.asset_id, args.locale, args.translation)
    return f'Translation saved for "{args.asset_id}" in [{args.locale}]:\n{render_result(result)}'


@loco_tool(
    "get_translations",
    description="Get all translations for a specific asset/key across all locales",
    input_model=GetTranslationsInput,
)
def get_translations(client: LocoClient, args: GetTranslationsInput) -> str:
    result = client.call(f"/translations/{encode_path_segment(args.asset_id)}.json")
    if not (isinstance(result, ParsedJson) and isinstance(result.value, dict)):
        raise LocoError(f"Unexpected translations response from Loco API: {render_result(result)[:200]}")

    lines = []
    for locale, data in result.value.items():
        text = data.get("translation") if isinstance(data, dict) else None
        lines.append(f"[{locale}] {text or EMPTY_PLACEHOLDER}")
    body = "\n".join(lines)
    return f'Translations for "{args.asset_id}":\n{body}'


@loco_tool(
    "export_locale",
    description="Export all translations for a locale (json, xml, csv, xliff or po)",
    input_model=ExportLocaleInput,
)
def export_locale(client: LocoClient, args: ExportLocaleInput) -> str:
    ext = args.format or DEFAULT_EXPORT_FORMAT
    # Non-JSON bundles are opaque text; never try to parse them.
    result = client.call(
        f"/export/locale/{encode_path_segment(args.locale)}.{ext}",
        expect_json=ext == "json",
    )
    return f"Export [{args.locale}] ({ext}):\n{render_result(result)}"


@loco_tool(
    "batch_translate",
    description="Create an asset and add translations for multiple locales at once",
    input_model=BatchTranslateInput,
)
def batch_translate(client: LocoClient, args: BatchTranslateInput) -> str:
    outcome = run_batch_translate(
        client,
        args.id,
        args.source_text,
        args.translations,
        context=args.context,
    )

    failed = outcome.failed
    if failed is not None:
        logger.warning(
            "batch_translate %s stopped at [%s]; committed locales: %s",
            outcome.asset_id,
            failed.locale,
            ", ".join(outcome.committed) or "none",
        )
        raise failed.error

    lines = [f'Asset "{outcome.asset_id}" created with source: "{outcome.source_text}"']
    lines.extend(f"  [{s.locale}] {s.text}" for s in outcome.steps)
    return "\n".join(lines)
