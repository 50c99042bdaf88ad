import json

import pytest

from loco_common.errors import ApiError, ConfigurationError, LocoError
from loco_mcp import tools
from loco_mcp.client import LocoClient
from loco_mcp.registry import invoke


# --- list_locales / list_assets --------------------------------------------


def test_list_locales_renders_code_and_name(loco):
    out = invoke("list_locales", {})
    assert out == "Locales (3):\nen — English\nfr — French\nde — German"
    assert loco.calls[0].path == "/locales"


def test_list_assets_empty_renders_no_assets(loco):
    assert invoke("list_assets", {}) == "No assets found."


def test_list_assets_renders_bullets(loco):
    loco.add_asset("home.title")
    loco.add_asset("home.body", type="html")
    out = invoke("list_assets", {})
    assert out == "Assets (2):\n• home.title (text)\n• home.body (html)"


def test_list_assets_filter_sent_as_query_param(loco):
    loco.add_asset("home.title")
    loco.add_asset("footer.copyright")
    out = invoke("list_assets", {"filter": "home"})
    assert loco.calls[0].params == {"filter": "home"}
    assert "home.title" in out
    assert "footer.copyright" not in out


def test_list_assets_without_filter_sends_no_params(loco):
    invoke("list_assets", {"filter": None})
    assert loco.calls[0].params is None


@pytest.mark.parametrize(
    "path, tool, body",
    [
        ("/locales", "list_locales", [{"code": "fr", "name": None}]),
        ("/locales", "list_locales", [{"name": "French"}]),
        ("/assets", "list_assets", [{"id": "home.title"}, "footer"]),
        ("/assets", "list_assets", [{"id": 42, "type": "text"}]),
    ],
)
def test_malformed_list_items_raise_loco_error(loco, path, tool, body):
    loco.respond("GET", path, 200, json.dumps(body))
    with pytest.raises(LocoError) as ei:
        invoke(tool, {})
    assert "malformed" in str(ei.value)
    assert ei.value.to_typed_error()["error"]["details"]["errors"]


# --- create_asset ------------------------------------------------------------


def test_create_asset_sends_only_supplied_fields(loco):
    out = invoke("create_asset", {"id": "home.welcome_title", "context": "Landing page"})

    call = loco.calls[0]
    assert call.method == "POST"
    assert call.path == "/assets"
    assert call.headers["Content-Type"] == "application/json"
    assert json.loads(call.body_text) == {"id": "home.welcome_title", "context": "Landing page"}
    assert out.startswith("Asset created:\n")
    assert json.loads(out.split("\n", 1)[1])["id"] == "home.welcome_title"


def test_create_asset_all_fields(loco):
    invoke(
        "create_asset",
        {"id": "a.b", "text": "Hi", "type": "html", "context": "ctx", "notes": "n"},
    )
    assert json.loads(loco.calls[0].body_text) == {
        "id": "a.b",
        "text": "Hi",
        "type": "html",
        "context": "ctx",
        "notes": "n",
    }


def test_asset_body_omits_empty_values():
    assert tools.asset_body("x", text="", type=None, context=None, notes="") == {"id": "x"}


def test_created_asset_appears_in_list(loco):
    invoke("create_asset", {"id": "checkout.pay_now", "text": "Pay now"})
    assert "• checkout.pay_now (text)" in invoke("list_assets", {})


def test_create_asset_duplicate_propagates_api_error(loco):
    loco.add_asset("dup")
    with pytest.raises(ApiError) as ei:
        invoke("create_asset", {"id": "dup"})
    assert ei.value.status == 409
    assert "already exists" in ei.value.body


# --- translate / get_translations --------------------------------------------


def test_translate_posts_raw_string(loco):
    loco.add_asset("home.title", "Welcome")
    out = invoke("translate", {"assetId": "home.title", "locale": "fr", "translation": "Bienvenue"})

    call = loco.calls[0]
    assert call.method == "POST"
    assert call.path == "/translations/home.title/fr"
    assert call.body_text == "Bienvenue"
    assert "Content-Type" not in call.headers
    assert out.startswith('Translation saved for "home.title" in [fr]:\n')
    assert '"message": "Translation saved"' in out


def test_translate_percent_encodes_path_segments(loco):
    loco.add_asset("a/b")
    invoke("translate", {"assetId": "a/b", "locale": "fr", "translation": "x"})
    assert loco.calls[0].path == "/translations/a%2Fb/fr"
    assert loco.translations["a/b"]["fr"] == "x"


def test_translate_then_get_shows_text(loco):
    loco.add_asset("home.title", "Welcome")
    invoke("translate", {"assetId": "home.title", "locale": "de", "translation": "Willkommen"})

    out = invoke("get_translations", {"assetId": "home.title"})
    assert out.splitlines() == [
        'Translations for "home.title":',
        "[en] Welcome",
        "[fr] (empty)",
        "[de] Willkommen",
    ]
    assert loco.calls[-1].path == "/translations/home.title.json"


def test_get_translations_placeholder_for_missing_translation_key(loco):
    loco.respond("GET", "/translations/k.json", 200, json.dumps({"en": {"translation": "Hi"}, "fr": {}, "de": None}))
    out = invoke("get_translations", {"assetId": "k"})
    assert out.splitlines()[1:] == ["[en] Hi", "[fr] (empty)", "[de] (empty)"]


def test_translate_unknown_asset_propagates_404(loco):
    with pytest.raises(ApiError) as ei:
        invoke("translate", {"assetId": "missing", "locale": "fr", "translation": "x"})
    assert ei.value.status == 404
    assert "Asset not found" in ei.value.body


# --- export_locale -------------------------------------------------------------


def test_export_json_is_pretty_printed(loco):
    loco.add_asset("home.title", "Welcome")
    out = invoke("export_locale", {"locale": "en"})

    assert loco.calls[0].path == "/export/locale/en.json"
    header, body = out.split("\n", 1)
    assert header == "Export [en] (json):"
    assert body == json.dumps({"home.title": "Welcome"}, indent=2)


def test_export_csv_is_verbatim(loco):
    loco.add_asset("home.title", "Welcome")
    out = invoke("export_locale", {"locale": "en", "format": "csv"})
    assert loco.calls[0].path == "/export/locale/en.csv"
    assert out == "Export [en] (csv):\nid,text\nhome.title,Welcome\n"


def test_export_non_json_never_reencoded(loco):
    loco.respond("GET", "/export/locale/fr.csv", 200, "42")
    assert invoke("export_locale", {"locale": "fr", "format": "csv"}) == "Export [fr] (csv):\n42"


@pytest.mark.parametrize("fmt", ["xml", "xliff", "po"])
def test_export_other_formats_pass_through(loco, fmt):
    out = invoke("export_locale", {"locale": "fr", "format": fmt})
    assert out == f"Export [fr] ({fmt}):\n<export locale=fr format={fmt}>"


# --- batch_translate -------------------------------------------------------------


def test_batch_translate_creates_then_writes_in_order(loco):
    out = invoke(
        "batch_translate",
        {"id": "t.k", "sourceText": "Hello", "translations": {"fr": "Bonjour", "de": "Hallo"}},
    )

    assert [(c.method, c.path) for c in loco.calls] == [
        ("POST", "/assets"),
        ("POST", "/translations/t.k/fr"),
        ("POST", "/translations/t.k/de"),
    ]
    assert json.loads(loco.calls[0].body_text) == {"id": "t.k", "text": "Hello"}
    assert loco.translations["t.k"] == {"en": "Hello", "fr": "Bonjour", "de": "Hallo"}
    assert out == 'Asset "t.k" created with source: "Hello"\n  [fr] Bonjour\n  [de] Hallo'


def test_batch_translate_sends_context(loco):
    invoke(
        "batch_translate",
        {"id": "b.s", "sourceText": "Submit", "translations": {}, "context": "button"},
    )
    assert json.loads(loco.calls[0].body_text) == {"id": "b.s", "text": "Submit", "context": "button"}
    assert len(loco.calls) == 1


def test_batch_translate_partial_failure_keeps_earlier_writes(loco):
    loco.fail("POST", "/translations/t.k/de", 500, "boom")

    with pytest.raises(ApiError) as ei:
        invoke(
            "batch_translate",
            {"id": "t.k", "sourceText": "Hello", "translations": {"fr": "Bonjour", "de": "Hallo", "es": "Hola"}},
        )

    assert ei.value.status == 500
    assert ei.value.body == "boom"
    # fr committed, es never attempted
    assert loco.translations["t.k"]["fr"] == "Bonjour"
    assert [c.path for c in loco.calls][-1] == "/translations/t.k/de"
    assert "es" not in loco.translations["t.k"]


def test_batch_translate_asset_creation_failure_stops_early(loco):
    loco.add_asset("t.k")
    with pytest.raises(ApiError) as ei:
        invoke("batch_translate", {"id": "t.k", "sourceText": "Hello", "translations": {"fr": "Bonjour"}})
    assert ei.value.status == 409
    assert len(loco.calls) == 1


def test_run_batch_translate_reports_steps(loco):
    loco.fail("POST", "/translations/t.k/de", 502, "bad gateway")

    outcome = tools.run_batch_translate(LocoClient(), "t.k", "Hello", {"fr": "Bonjour", "de": "Hallo"})

    assert outcome.committed == ["fr"]
    failed = outcome.failed
    assert failed is not None and failed.locale == "de"
    assert isinstance(failed.error, ApiError) and failed.error.status == 502
    assert [s.ok for s in outcome.steps] == [True, False]


# --- cross-cutting -------------------------------------------------------------------


TOOL_CALLS = [
    ("list_locales", {}, "GET", "/locales"),
    ("list_assets", {}, "GET", "/assets"),
    ("create_asset", {"id": "x"}, "POST", "/assets"),
    ("translate", {"assetId": "x", "locale": "fr", "translation": "t"}, "POST", "/translations/x/fr"),
    ("get_translations", {"assetId": "x"}, "GET", "/translations/x.json"),
    ("export_locale", {"locale": "fr"}, "GET", "/export/locale/fr.json"),
    ("batch_translate", {"id": "x", "sourceText": "s", "translations": {"fr": "t"}}, "POST", "/assets"),
]


@pytest.mark.parametrize("name, args, method, path", TOOL_CALLS)
def test_every_tool_propagates_api_error(loco, name, args, method, path):
    loco.fail(method, path, 403, '{"error":"Forbidden"}')
    with pytest.raises(ApiError) as ei:
        invoke(name, args)
    assert ei.value.status == 403
    assert ei.value.body == '{"error":"Forbidden"}'


@pytest.mark.parametrize("name, args, method, path", TOOL_CALLS)
def test_every_tool_requires_credential_before_network(loco, monkeypatch, name, args, method, path):
    monkeypatch.delenv("LOCALISE_API_KEY")
    with pytest.raises(ConfigurationError):
        invoke(name, args)
    assert loco.calls == []
