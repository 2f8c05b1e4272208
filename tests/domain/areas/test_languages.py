from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from catalog_bootstrap.domain.areas.languages import reconcile_languages
from catalog_bootstrap.domain.spec import SpecLanguage
from tests.helpers.graphql import FakeGraphQL, error, make_context

if TYPE_CHECKING:
    from catalog_bootstrap.adapters.graphql import GraphQLResponse
    from tests.helpers.updates import UpdateRecorder


def _remote(
    languages: list[dict[str, str]],
    default: str | None,
    *,
    set_default: GraphQLResponse | None = None,
) -> FakeGraphQL:
    return FakeGraphQL(
        {
            "GET_INSTANCE_LANGUAGES": {
                "instance": {
                    "get": {
                        "defaults": {"language": default},
                        "availableLanguages": languages,
                    }
                }
            },
            "CREATE_LANGUAGE": lambda variables: {"language": {"add": variables["input"]}},
            "SET_DEFAULT_LANGUAGE": set_default
            or {"instance": {"update": {"id": "instance-1"}}},
        }
    )


def _defaults(languages: list[SpecLanguage]) -> list[str]:
    return [language.code for language in languages if language.is_default]


def _run(
    remote: FakeGraphQL, spec: list[SpecLanguage] | None, updates: UpdateRecorder
) -> list[SpecLanguage]:
    return asyncio.run(reconcile_languages(spec, make_context(remote), updates))


def test_new_default_language_is_created_then_set(updates: UpdateRecorder) -> None:
    remote = _remote([{"code": "en", "name": "English"}], "en")
    spec = [
        SpecLanguage(code="en", name="English"),
        SpecLanguage(code="no", name="Norsk", isDefault=True),
    ]

    result = _run(remote, spec, updates)

    assert [call[0] for call in remote.calls] == [
        "GET_INSTANCE_LANGUAGES",
        "CREATE_LANGUAGE",
        "SET_DEFAULT_LANGUAGE",
    ]
    assert remote.named("CREATE_LANGUAGE")[0]["input"] == {"code": "no", "name": "Norsk"}
    assert remote.named("SET_DEFAULT_LANGUAGE")[0]["language"] == "no"
    assert {language.code for language in result} == {"en", "no"}
    assert _defaults(result) == ["no"]
    assert updates.progress[-1] == 1.0


def test_remote_default_is_kept_without_a_declared_default(updates: UpdateRecorder) -> None:
    remote = _remote([{"code": "en", "name": "English"}, {"code": "de", "name": "Deutsch"}], "de")

    result = _run(remote, [SpecLanguage(code="fr", name="Francais")], updates)

    assert remote.count("SET_DEFAULT_LANGUAGE") == 0
    assert _defaults(result) == ["de"]


def test_first_available_language_is_forced_default(updates: UpdateRecorder) -> None:
    remote = _remote([{"code": "sv", "name": "Svenska"}, {"code": "en", "name": "English"}], None)

    result = _run(remote, None, updates)

    assert _defaults(result) == ["sv"]
    assert remote.count("CREATE_LANGUAGE") == 0


def test_failed_default_change_keeps_the_remote_default(updates: UpdateRecorder) -> None:
    remote = _remote(
        [{"code": "en", "name": "English"}, {"code": "no", "name": "Norsk"}],
        "en",
        set_default=error("Not allowed"),
    )

    result = _run(remote, [SpecLanguage(code="no", name="Norsk", isDefault=True)], updates)

    assert _defaults(result) == ["en"]
    assert updates.warnings == ['Setting default language to "no"']


def test_declared_default_that_failed_to_create_is_ignored(updates: UpdateRecorder) -> None:
    def create(_variables: dict[str, Any]) -> GraphQLResponse:
        return error("Unsupported language")

    remote = _remote([{"code": "en", "name": "English"}], "en")
    remote.routes["CREATE_LANGUAGE"] = create

    result = _run(remote, [SpecLanguage(code="xx", name="Unknown", isDefault=True)], updates)

    assert remote.count("SET_DEFAULT_LANGUAGE") == 0
    assert _defaults(result) == ["en"]
    assert updates.warnings == ["Could not create Unknown"]
