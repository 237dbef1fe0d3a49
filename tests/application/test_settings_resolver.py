import pytest

from prepigo.application.settings_resolver import resolve_settings, resolve_settings_with_source
from prepigo.domain.models import Container
from prepigo.domain.settings import SrsSettings

GLOBAL = SrsSettings()
ANATOMY = SrsSettings(scheduler="sm2")
BONES = SrsSettings(scheduler="fsrs6")


@pytest.fixture
def forest():
    bones = Container(id="bones", name="Bones", has_custom_settings=True, settings=BONES)
    skull = Container(id="skull", name="Skull")
    limbs = Container(id="limbs", name="Limbs", children=(bones,))
    # Flag set but no settings object: ignored
    broken = Container(id="broken", name="Broken", has_custom_settings=True)
    anatomy = Container(
        id="anatomy",
        name="Anatomy",
        children=(limbs, skull, broken),
        has_custom_settings=True,
        settings=ANATOMY,
    )
    chemistry = Container(id="chem", name="Chemistry")
    return [anatomy, chemistry]


def test_container_with_own_override(forest):
    assert resolve_settings_with_source(forest, "bones", GLOBAL) == (BONES, "Bones")


def test_nearest_ancestor_wins(forest):
    assert resolve_settings_with_source(forest, "skull", GLOBAL) == (ANATOMY, "Anatomy")
    assert resolve_settings_with_source(forest, "limbs", GLOBAL) == (ANATOMY, "Anatomy")


def test_flag_without_settings_falls_through(forest):
    assert resolve_settings(forest, "broken", GLOBAL) is ANATOMY


def test_no_override_uses_global(forest):
    assert resolve_settings_with_source(forest, "chem", GLOBAL) == (GLOBAL, "Global")


def test_unknown_container_uses_global(forest):
    assert resolve_settings_with_source(forest, "missing", GLOBAL) == (GLOBAL, "Global")
    assert resolve_settings([], "anything", GLOBAL) is GLOBAL
