import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, ValidationError

from .errors import EndpointNotFound, InitializationError
from .field_mapper import FieldMapperEntry
from .package import StaticPackageResolver, ThriftRootPackageResolver
from .type_names import PackageNameResolver

logger = logging.getLogger(__name__)


class TransformConfig(BaseModel):
    qualified_name: str
    override: bool = False

    def to_entry(self) -> FieldMapperEntry:
        return FieldMapperEntry(qualified_name=self.qualified_name, override=self.override)


def to_field_map(transforms: dict[str, TransformConfig]) -> dict[str, FieldMapperEntry]:
    return {key: transform.to_entry() for key, transform in transforms.items()}


class EndpointConfig(BaseModel):
    """Field mappings of one endpoint onto its downstream client call."""

    endpoint_id: str
    client_id: str | None = None
    client_method: str | None = None
    http_method: str = "GET"
    # e.g. /users/:userID/contacts, path params bind to params.* fields
    http_path: str | None = None
    req_transforms: dict[str, TransformConfig] = {}
    resp_transforms: dict[str, TransformConfig] = {}
    # target path -> header name
    headers_propagate: dict[str, TransformConfig] = {}
    req_header_map: dict[str, str] = {}
    res_header_map: dict[str, str] = {}
    optional_entries: list[str] = []

    def request_field_map(self) -> dict[str, FieldMapperEntry]:
        return to_field_map(self.req_transforms)

    def response_field_map(self) -> dict[str, FieldMapperEntry]:
        return to_field_map(self.resp_transforms)

    def header_field_map(self) -> dict[str, FieldMapperEntry]:
        return to_field_map(self.headers_propagate)


class GeneratorConfig(BaseModel):
    name: str | None = None
    annotation_prefix: str = "gateway"
    thrift_root_dir: str | None = None
    # thrift file -> Go package
    packages: dict[str, str] = {}
    endpoints: list[EndpointConfig] = []

    @staticmethod
    def from_file(file: str | Path) -> "GeneratorConfig":
        file = Path(file)
        content = file.read_text(encoding="utf-8")
        suffix = file.suffix.lower()

        try:
            if suffix == ".json":
                config = GeneratorConfig.model_validate_json(content)
            elif suffix in (".yaml", ".yml"):
                data = yaml.safe_load(content)  # may be None
                if not isinstance(data, dict):
                    data = {}
                config = GeneratorConfig.model_validate(data)
            else:
                raise InitializationError(f"unsupported config format {suffix} ({str(file)})")

        except ValidationError as e:
            msg = f"failed to load config from {str(file)}"
            logger.error(msg)
            logger.error(e.errors())
            raise InitializationError(msg)

        if config.name is None:
            config.name = file.parent.name
        return config

    def endpoint(self, endpoint_id: str) -> EndpointConfig:
        endpoint = next((e for e in self.endpoints if e.endpoint_id == endpoint_id), None)
        if endpoint is None:
            raise EndpointNotFound(endpoint_id)
        return endpoint

    def package_resolver(self) -> PackageNameResolver:
        fallback = None
        if self.thrift_root_dir is not None:
            fallback = ThriftRootPackageResolver(self.thrift_root_dir)
        if not self.packages and fallback is not None:
            return fallback
        return StaticPackageResolver(self.packages, fallback)
