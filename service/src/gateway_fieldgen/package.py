from __future__ import annotations

import logging

from .casing import camel_case
from .errors import PackageResolutionFailure
from .type_names import PackageNameResolver

logger = logging.getLogger(__name__)

THRIFT_SUFFIX = ".thrift"


class ThriftRootPackageResolver:
    """Derives the Go package of a generated type from its IDL file location.

    ``<root>/clients/bar/bar.thrift`` lives in package ``clientsBarBar``.
    """

    def __init__(self, thrift_root_dir: str) -> None:
        self.thrift_root_dir = thrift_root_dir.rstrip("/")

    def relative_file_name(self, thrift_file: str) -> str:
        if not thrift_file.endswith(THRIFT_SUFFIX):
            raise PackageResolutionFailure(f"file {thrift_file} is not .thrift")

        idx = thrift_file.find(self.thrift_root_dir)
        if idx == -1:
            raise PackageResolutionFailure(
                f"file {thrift_file} is not in thrift dir ({self.thrift_root_dir})"
            )
        return thrift_file[idx + len(self.thrift_root_dir):]

    def type_package_name(self, thrift_file: str) -> str:
        relative = self.relative_file_name(thrift_file)

        # strip the leading "/" and the extension
        segment = relative[1 : -len(THRIFT_SUFFIX)]
        return camel_case(segment.replace("/", "_"))


class StaticPackageResolver:
    """Looks packages up in an explicit table, optionally deferring to another resolver."""

    def __init__(
        self,
        packages: dict[str, str],
        fallback: PackageNameResolver | None = None,
    ) -> None:
        self.packages = dict(packages)
        self.fallback = fallback

    def type_package_name(self, thrift_file: str) -> str:
        package = self.packages.get(thrift_file)
        if package is not None:
            return package

        if self.fallback is None:
            raise PackageResolutionFailure(f"no package configured for {thrift_file}")

        logger.debug("no static package for %s, using fallback resolver", thrift_file)
        return self.fallback.type_package_name(thrift_file)
