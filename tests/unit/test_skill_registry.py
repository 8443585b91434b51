import pytest
from pydantic import ValidationError

from skill_dispatch.errors import DuplicateSkillId, RegistrySealed, UnknownSkillId
from skill_dispatch.sections.registry import SectionRegistry
from skill_dispatch.skills.chain import SkillChain
from skill_dispatch.skills.registry import (
    SettingEntry,
    SettingsDescriptor,
    SkillContext,
    SkillInfo,
    SkillRegistry,
    is_enabled_preference_key,
)


def test_register_and_resolve(sections: SectionRegistry, chain_factory) -> None:
    registry = SkillRegistry()
    info = registry.add("music", chain_factory("music"), name="Music")

    assert registry.resolve("music") is info
    chain = registry.build("music", SkillContext(sections=sections))
    assert isinstance(chain, SkillChain)
    assert chain.skill_id == "music"


def test_duplicate_skill_registration_rejected(chain_factory) -> None:
    registry = SkillRegistry()
    info = SkillInfo(id="music", name="Music", build=chain_factory("music"))

    registry.register(info)
    with pytest.raises(DuplicateSkillId):
        registry.register(SkillInfo(id="music", name="Other", build=chain_factory("music")))
    with pytest.raises(ValueError):
        registry.register(info)

    assert len(registry) == 1
    assert registry.resolve("music").name == "Music"


def test_unknown_skill_rejected() -> None:
    with pytest.raises(UnknownSkillId):
        SkillRegistry().resolve("missing")


def test_enabled_infos_honor_flag_preferences_and_availability(
    sections: SectionRegistry, chain_factory
) -> None:
    registry = SkillRegistry()
    registry.add("music", chain_factory("music"))
    registry.add("weather", chain_factory("weather"), enabled=False)
    registry.add("lyrics", chain_factory("music"), is_available=lambda context: False)

    context = SkillContext(sections=sections)
    assert [info.id for info in registry.enabled_infos(context)] == ["music"]
    assert [info.id for info in registry.available_infos(context)] == ["music", "weather"]

    context = SkillContext(
        sections=sections,
        preferences={
            is_enabled_preference_key("music"): False,
            is_enabled_preference_key("weather"): True,
        },
    )
    assert [info.id for info in registry.enabled_infos(context)] == ["weather"]


def test_factory_must_return_a_chain(sections: SectionRegistry) -> None:
    registry = SkillRegistry()
    registry.add("broken", lambda context: object())

    with pytest.raises(TypeError):
        registry.build("broken", SkillContext(sections=sections))


def test_skill_info_is_immutable(chain_factory) -> None:
    info = SkillInfo(
        id="music",
        name="Music",
        build=chain_factory("music"),
        settings=SettingsDescriptor(
            title="Music",
            entries=[SettingEntry(key="provider", label="Provider", kind="choice", choices=["a", "b"])],
        ),
    )

    with pytest.raises(ValidationError):
        info.name = "Other"
    assert info.settings is not None
    assert info.settings.entries[0].choices == ["a", "b"]


def test_empty_skill_id_rejected(chain_factory) -> None:
    with pytest.raises(ValidationError):
        SkillInfo(id="", name="Nothing", build=chain_factory("music"))


def test_sealed_registry_rejects_registration(chain_factory) -> None:
    registry = SkillRegistry()
    registry.seal()

    with pytest.raises(RegistrySealed):
        registry.add("music", chain_factory("music"))
    assert "music" not in registry
