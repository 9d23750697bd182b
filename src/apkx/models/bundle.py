"""Models for App Bundle modules and their APEX targeting metadata."""

from pydantic import BaseModel, ConfigDict, Field

BASE_MODULE_NAME = "base"


class ApexImageTargeting(BaseModel):
    """Device dimension an APEX image is built for."""
    abi: list[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class TargetedApexImage(BaseModel):
    """One image file of an APEX module and its targeting."""
    path: str
    targeting: ApexImageTargeting = Field(default_factory=ApexImageTargeting)

    model_config = ConfigDict(frozen=True)


class ApexImages(BaseModel):
    """Targeting config of an APEX module (apex_image.json)."""
    images: tuple[TargetedApexImage, ...] = Field(alias="image", default=())

    @property
    def image_paths(self) -> frozenset[str]:
        return frozenset(image.path for image in self.images)

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class BundleModule(BaseModel):
    """A named module of a bundle with its fixed set of relative file paths."""
    name: str
    files: frozenset[str] = frozenset()
    apex_config: ApexImages | None = Field(alias="apexConfig", default=None)

    @property
    def is_base(self) -> bool:
        return self.name == BASE_MODULE_NAME

    @property
    def is_apex(self) -> bool:
        """Modules carrying an APEX targeting config form the system-image family."""
        return self.apex_config is not None

    def has_file(self, path: str) -> bool:
        return path in self.files

    def files_under(self, directory: str) -> frozenset[str]:
        prefix = directory.rstrip("/") + "/"
        return frozenset(path for path in self.files if path.startswith(prefix))

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class Bundle(BaseModel):
    """An immutable, ordered collection of modules plus bundle-level files."""
    modules: tuple[BundleModule, ...]
    metadata_files: frozenset[str] = Field(alias="metadataFiles", default=frozenset())
    source: str | None = None

    @property
    def module_names(self) -> list[str]:
        return [module.name for module in self.modules]

    @property
    def is_apex(self) -> bool:
        return any(module.is_apex for module in self.modules)

    model_config = ConfigDict(frozen=True, populate_by_name=True)
