"""
Portal Locales

Translation files live at locales/<lang>/<namespace>.json, one flat JSON
object of key -> text per (language, namespace). Text values are sanitized
once at load time so translations can never inject markup.

build_defs() produces the definition map a template is rendered with: the
default language's map, overlaid with the request language's map, then
patched by the namespace's content provider if it has one.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Mapping

from yarl import URL

from portal.errors import SiteConfigError

if TYPE_CHECKING:
    from portal.site import SiteContext

logger = logging.getLogger(__name__)

_INJECT_CHARS = {
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
}
_INJECT_RE = re.compile("[" + re.escape("".join(_INJECT_CHARS)) + "]")


def sanitize_inject(text: str) -> str:
    """Escape text so it can't inject tags or break out of an attribute."""
    if not text:
        return text
    return _INJECT_RE.sub(lambda m: _INJECT_CHARS[m.group(0)], text)


@dataclass(frozen=True)
class Locale:
    """A language the site is translated into."""

    code: str
    name: str
    translations: Mapping[str, Mapping] = field(default_factory=dict)


def _read_translation(path: Path) -> Mapping:
    with open(path, encoding="utf-8") as f:
        raw = json.load(f)
    if not isinstance(raw, dict):
        raise SiteConfigError(f"translation file {path} is not a JSON object")
    return MappingProxyType({
        key: sanitize_inject(value) if isinstance(value, str) else value
        for key, value in raw.items()
    })


def load_locales(site_dir: Path, namespaces: list[str], default_lang: str) -> dict[str, Locale]:
    """Load every configured language and its translations.

    The default language must have a translation file for every namespace,
    since other languages fall back to it key by key.
    """
    with open(site_dir / "data" / "locales.json", encoding="utf-8") as f:
        registry = json.load(f)

    if default_lang not in registry:
        raise SiteConfigError(f'default language "{default_lang}" is not listed in locales.json')

    locales: dict[str, Locale] = {}
    for code, info in registry.items():
        translations = {}
        for namespace in namespaces:
            path = site_dir / "locales" / code / f"{namespace}.json"
            if path.is_file():
                translations[namespace] = _read_translation(path)
            elif code == default_lang:
                raise SiteConfigError(
                    f'missing translation file {namespace}.json for default language "{default_lang}"'
                )
            else:
                logger.debug(f"No {namespace} translations for {code}, falling back to {default_lang}")

        locales[code] = Locale(code=code, name=info.get("name", code), translations=MappingProxyType(translations))
        logger.info(f"Loaded locale {code} ({len(translations)} namespaces)")

    return locales


def static_defs(site: "SiteContext", namespace: str, lang: str) -> dict:
    """Merge the default-language and request-language translations."""
    default = site.locales[site.default_lang].translations.get(namespace, {})
    defs = dict(default)
    if lang != site.default_lang and lang in site.locales:
        defs.update(site.locales[lang].translations.get(namespace, {}))
    return defs


async def build_defs(site: "SiteContext", namespace: str, lang: str, url: URL | None = None) -> dict:
    """Build the definitions a namespace's template is rendered with."""
    defs = static_defs(site, namespace, lang)

    handler = site.handlers.get(namespace)
    if handler is not None and handler.provides_content:
        defs.update(await handler.provide(site, url, lang, defs))

    return defs
