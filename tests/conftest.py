"""
Shared test fixtures and configuration.
"""

from pathlib import Path

import pytest

from toolpin.adapters.mock import (
    MockInstaller,
    MockProjectSpecSource,
    MockRegistryClient,
    MockRunner,
)
from toolpin.core.config.settings import Settings
from toolpin.core.engine import Engine
from toolpin.core.models.definition import DefinitionTable


def make_definitions() -> DefinitionTable:
    """A two-tool table: yarn split across two registries, pnpm in one."""
    return DefinitionTable.model_validate({
        "definitions": {
            "yarn": {
                "default": "1.22.19",
                "fetchLatestFrom": {"type": "npm", "package": "yarn"},
                "transparent": {"default": "4.0.0", "commands": [["yarn", "dlx"]]},
                "ranges": {
                    "1.x": {
                        "url": "https://example.test/yarn-{}.tgz",
                        "bin": {"yarn": "./bin/yarn.js", "yarnpkg": "./bin/yarn.js"},
                        "registry": {"type": "npm", "package": "yarn"},
                    },
                    ">=2.0.0": {
                        "url": "https://example.test/berry/{}/yarn.js",
                        "bin": ["yarn", "yarnpkg"],
                        "registry": {"type": "url", "url": "https://example.test/berry/tags"},
                    },
                },
            },
            "pnpm": {
                "default": "8.6.0",
                "fetchLatestFrom": {"type": "npm", "package": "pnpm"},
                "transparent": {"commands": [["pnpm", "dlx"], ["pnpx"]]},
                "ranges": {
                    "*": {
                        "url": "https://example.test/pnpm-{}.tgz",
                        "bin": {"pnpm": "./bin/pnpm.cjs", "pnpx": "./bin/pnpx.cjs"},
                        "registry": {"type": "npm", "package": "pnpm"},
                    },
                },
            },
        },
    })


@pytest.fixture
def definitions() -> DefinitionTable:
    return make_definitions()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings isolated under tmp_path, latest-fetching disabled."""
    return Settings(home=tmp_path / "home", default_to_latest=False)


@pytest.fixture
def registry() -> MockRegistryClient:
    return MockRegistryClient(
        versions={
            "yarn": ["1.21.0", "1.22.19"],
            "https://example.test/berry/tags": ["2.0.0", "3.6.4", "4.0.0-rc.1"],
            "pnpm": ["7.33.0", "8.6.0", "8.15.9", "9.0.0"],
        },
        tags={
            "https://example.test/berry/tags": {"stable": "3.6.4", "canary": "4.0.0-rc.1"},
            "pnpm": {"latest": "8.15.9"},
        },
        latest={"yarn": "1.22.19", "pnpm": "8.15.9"},
    )


@pytest.fixture
def installer() -> MockInstaller:
    return MockInstaller()


@pytest.fixture
def runner() -> MockRunner:
    return MockRunner()


@pytest.fixture
def project_source() -> MockProjectSpecSource:
    return MockProjectSpecSource()


@pytest.fixture
def engine(definitions, settings, registry, installer, runner, project_source) -> Engine:
    return Engine(
        definitions=definitions,
        settings=settings,
        registry=registry,
        installer=installer,
        runner=runner,
        project_specs=project_source,
    )
