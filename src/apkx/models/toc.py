"""Models for the APK set table of contents (toc.json)."""

from pydantic import BaseModel, ConfigDict, Field

TOC_FILE_NAME = "toc.json"


class ApkTargeting(BaseModel):
    """Targeting of a single split APK; all unset for a master split."""
    abi: str | None = None
    screen_density: int | None = Field(alias="screenDensity", default=None)
    language: str | None = None

    @property
    def is_master(self) -> bool:
        return self.abi is None and self.screen_density is None and self.language is None

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class ApkDescription(BaseModel):
    """An APK file inside the set."""
    path: str
    targeting: ApkTargeting = Field(default_factory=ApkTargeting)
    standalone: bool = False

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class ApkSet(BaseModel):
    """The APKs generated for one module within a variant."""
    module_name: str = Field(alias="moduleName")
    delivery: str = "install-time"
    dependencies: list[str] = Field(default_factory=list)
    apks: list[ApkDescription] = Field(alias="apk", default_factory=list)

    @property
    def is_install_time(self) -> bool:
        return self.delivery == "install-time"

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class SdkVersionRange(BaseModel):
    min: int = 1

    model_config = ConfigDict(frozen=True)


class VariantTargeting(BaseModel):
    sdk_version: SdkVersionRange = Field(alias="sdkVersion", default_factory=SdkVersionRange)
    abi: list[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class Variant(BaseModel):
    """A set of APKs that together serve one class of devices."""
    variant_number: int = Field(alias="variantNumber", default=0)
    targeting: VariantTargeting = Field(default_factory=VariantTargeting)
    apk_sets: list[ApkSet] = Field(alias="apkSet", default_factory=list)

    @property
    def is_standalone(self) -> bool:
        apks = [apk for apk_set in self.apk_sets for apk in apk_set.apks]
        return bool(apks) and all(apk.standalone for apk in apks)

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class BuildApksResult(BaseModel):
    """Parsed toc.json."""
    package_name: str | None = Field(alias="packageName", default=None)
    variants: list[Variant] = Field(alias="variant", default_factory=list)

    model_config = ConfigDict(frozen=True, populate_by_name=True)
