from __future__ import annotations

from typing import Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

AssetType = Literal["text", "html", "xml"]
ExportFormat = Literal["json", "xml", "csv", "xliff", "po"]


# --- Remote entities (extra fields from the API are kept, not validated) ---


class Locale(BaseModel):
    model_config = ConfigDict(extra="allow")

    code: str
    name: str = ""


class Asset(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    type: str = "text"
    context: Optional[str] = None
    notes: Optional[str] = None


# --- Tool inputs ---


class ToolInput(BaseModel):
    """Base for tool argument models: unknown fields are rejected."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class ListLocalesInput(ToolInput):
    pass


class ListAssetsInput(ToolInput):
    filter: Optional[str] = Field(default=None, description="Optional text filter to search asset IDs")


class CreateAssetInput(ToolInput):
    id: str = Field(description="Unique asset ID, e.g. 'home.welcome_title'")
    text: Optional[str] = Field(default=None, description="Initial source language translation text")
    type: Optional[AssetType] = Field(default=None, description="Asset type, defaults to 'text'")
    context: Optional[str] = Field(default=None, description="Context descriptor for translators")
    notes: Optional[str] = Field(default=None, description="Notes for translators")


class TranslateInput(ToolInput):
    asset_id: str = Field(alias="assetId", description="The asset/key ID, e.g. 'home.welcome_title'")
    locale: str = Field(description="Locale code, e.g. 'fr', 'de', 'ar', 'es'")
    translation: str = Field(description="The translated text")


class GetTranslationsInput(ToolInput):
    asset_id: str = Field(alias="assetId", description="The asset/key ID")


class ExportLocaleInput(ToolInput):
    locale: str = Field(description="Locale code to export, e.g. 'fr'")
    format: Optional[ExportFormat] = Field(default=None, description="Export format, defaults to 'json'")


class BatchTranslateInput(ToolInput):
    id: str = Field(description="Asset ID, e.g. 'buttons.submit'")
    source_text: str = Field(alias="sourceText", description="Source language text")
    translations: Dict[str, str] = Field(
        description='Object mapping locale codes to translated text, e.g. { "fr": "Soumettre", "de": "Einreichen" }'
    )
    context: Optional[str] = Field(default=None, description="Context for translators")
