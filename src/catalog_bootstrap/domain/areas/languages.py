"""Languages: create missing ones, then settle the instance default."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from catalog_bootstrap.domain.reconcile import AreaReconciler
from catalog_bootstrap.domain.spec import SpecLanguage
from catalog_bootstrap.domain.status import AreaUpdate, AreaWarning

from .base import parse_records

if TYPE_CHECKING:
    from collections.abc import Sequence

    from catalog_bootstrap.adapters.graphql import GraphQLResponse
    from catalog_bootstrap.domain.context import BootstrapContext
    from catalog_bootstrap.domain.reconcile import UpdateSink

INSTANCE_LANGUAGES_QUERY = """
query GET_INSTANCE_LANGUAGES($instanceId: ID!) {
  instance {
    get(id: $instanceId) {
      defaults {
        language
      }
      availableLanguages {
        code
        name
      }
    }
  }
}
"""

CREATE_LANGUAGE_MUTATION = """
mutation CREATE_LANGUAGE($instanceId: ID!, $input: CreateLanguageInput!) {
  language {
    add(instanceId: $instanceId, input: $input) {
      code
      name
    }
  }
}
"""

SET_DEFAULT_LANGUAGE_MUTATION = """
mutation SET_DEFAULT_LANGUAGE($instanceId: ID!, $language: String!) {
  instance {
    update(id: $instanceId, input: { defaults: { language: $language } }) {
      id
    }
  }
}
"""


@dataclass(frozen=True, slots=True)
class InstanceSettings:
    available_languages: list[SpecLanguage]
    default_language: str | None


def flag_default(languages: Sequence[SpecLanguage], default_code: str | None) -> list[SpecLanguage]:
    return [
        language.model_copy(update={"is_default": language.code == default_code})
        for language in languages
    ]


async def get_instance_settings(context: BootstrapContext) -> InstanceSettings:
    response = await context.call_management(
        INSTANCE_LANGUAGES_QUERY, {"instanceId": context.instance_id}
    )
    available = parse_records(
        SpecLanguage,
        response.select("instance", "get", "availableLanguages"),
        area="languages",
    )
    default_code = response.select("instance", "get", "defaults", "language")
    if not any(language.code == default_code for language in available):
        default_code = available[0].code if available else None
    return InstanceSettings(
        available_languages=flag_default(available, default_code),
        default_language=default_code,
    )


async def reconcile_languages(
    spec_languages: Sequence[SpecLanguage] | None,
    context: BootstrapContext,
    on_update: UpdateSink,
) -> list[SpecLanguage]:
    """Return every language of the instance with exactly one flagged default."""

    settings = await get_instance_settings(context)

    async def fetch_existing() -> list[SpecLanguage]:
        return settings.available_languages

    async def create(language: SpecLanguage) -> GraphQLResponse:
        return await context.call_management(
            CREATE_LANGUAGE_MUTATION,
            {
                "instanceId": context.instance_id,
                "input": {"code": language.code, "name": language.name},
            },
        )

    async def settle_default(languages: list[SpecLanguage]) -> list[SpecLanguage]:
        if not languages:
            return languages
        codes = {language.code for language in languages}
        declared = next(
            (language.code for language in spec_languages or () if language.is_default), None
        )
        default_code = next(
            code
            for code in (declared, settings.default_language, languages[0].code)
            if code is not None and code in codes
        )

        if default_code != settings.default_language:
            response = await context.call_management(
                SET_DEFAULT_LANGUAGE_MUTATION,
                {"instanceId": context.instance_id, "language": default_code},
            )
            message = f'Setting default language to "{default_code}"'
            if response.ok:
                on_update(AreaUpdate(message=f"{message}: success"))
            else:
                on_update(
                    AreaUpdate(
                        message=f"{message}: error",
                        warning=AreaWarning(message=message, cause=response.error_text()),
                    )
                )
                default_code = settings.default_language or default_code

        return flag_default(languages, default_code)

    reconciler = AreaReconciler[SpecLanguage](
        label="language",
        fetch_existing=fetch_existing,
        create=create,
        identity_key=lambda language: language.code,
        describe=lambda language: language.name,
        before_complete=settle_default,
    )
    return await reconciler.reconcile(spec_languages, on_update=on_update)
