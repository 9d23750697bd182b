"""Models for device capabilities and install options."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Split APKs need Lollipop; older devices only take standalone APKs.
MIN_SPLIT_APKS_SDK = 21


class DeviceSpec(BaseModel):
    """Resolved capabilities of a connected (or described) device."""
    supported_abis: list[str] = Field(alias="supportedAbis", default_factory=list)
    supported_locales: list[str] = Field(alias="supportedLocales", default_factory=list)
    screen_density: int = Field(alias="screenDensity", default=0)
    sdk_version: int = Field(alias="sdkVersion", default=1)
    device_id: str | None = Field(alias="deviceId", default=None)

    @field_validator("screen_density", "sdk_version")
    @classmethod
    def validate_non_negative(cls, v):
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @property
    def standalone_only(self) -> bool:
        """Whether the device can only install standalone APKs."""
        return self.sdk_version < MIN_SPLIT_APKS_SDK

    @property
    def languages(self) -> list[str]:
        """Language parts of supported locales, in preference order."""
        languages: list[str] = []
        for locale in self.supported_locales:
            language = locale.replace("_", "-").split("-")[0].lower()
            if language and language not in languages:
                languages.append(language)
        return languages

    def to_dict(self) -> dict:
        """Convert to the JSON form accepted by --device-spec."""
        data = self.model_dump(by_alias=True, exclude_none=True)
        data["standaloneOnly"] = self.standalone_only
        return data

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class InstallOptions(BaseModel):
    """Options applied uniformly to every APK of one install."""
    allow_downgrade: bool = Field(alias="allowDowngrade", default=False)

    model_config = ConfigDict(frozen=True, populate_by_name=True)
