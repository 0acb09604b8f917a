"""
Tests for the real adapters — package.json, install folder, HTTP registry, runner.

Network access is replaced by ``file://`` URLs, which ``urllib`` serves
through the same code path.
"""

import hashlib
import io
import json
import sys
import tarfile
from pathlib import Path

import pytest

from toolpin.adapters.install.folder import MARKER_FILE, InstallFolder, split_hash, split_url_hash
from toolpin.adapters.project.package_json import PackageJsonSpecSource, iter_manifests
from toolpin.adapters.registry.npm import HttpRegistryClient
from toolpin.adapters.shell.runner import SubprocessRunner
from toolpin.core.errors import IntegrityError, InvalidProjectSpec, ToolpinError
from toolpin.core.models import (
    Descriptor,
    Found,
    InstallInfo,
    Locator,
    NoProject,
    NoSpec,
    PreparedPackageManager,
    RangeSpec,
    RegistrySpec,
)


def _prepared(reference: str = "8.6.0+sha512.abc", location: str = "/nowhere",
              bin_map: dict | None = None) -> PreparedPackageManager:
    return PreparedPackageManager(
        locator=Locator(name="pnpm", reference=reference),
        spec=RangeSpec(url="https://example.test/pnpm-{}.tgz", registry=RegistrySpec(package="pnpm")),
        info=InstallInfo(location=location, hash="sha512.abc", bin=bin_map or {}),
    )


def _file_url(path: Path) -> str:
    # Path.as_uri() would escape the ``{}`` placeholder
    return f"file://{path}"


# ── package.json ─────────────────────────────────────────────────────


class TestPackageJson:
    def test_manifests_walk_up(self, tmp_path: Path):
        (tmp_path / "package.json").write_text("{}")
        sub = tmp_path / "src" / "lib"
        sub.mkdir(parents=True)
        assert next(iter_manifests(sub)) == (tmp_path / "package.json").resolve()

    def test_manifests_skip_node_modules(self, tmp_path: Path):
        (tmp_path / "package.json").write_text("{}")
        dep = tmp_path / "node_modules" / "left-pad"
        dep.mkdir(parents=True)
        (dep / "package.json").write_text("{}")
        assert next(iter_manifests(dep)) == (tmp_path / "package.json").resolve()

    def test_manifests_nearest_first(self, tmp_path: Path):
        (tmp_path / "package.json").write_text("{}")
        pkg = tmp_path / "packages" / "a"
        pkg.mkdir(parents=True)
        (pkg / "package.json").write_text("{}")
        assert list(iter_manifests(pkg))[:2] == [
            (pkg / "package.json").resolve(),
            (tmp_path / "package.json").resolve(),
        ]

    def test_workspace_package_uses_root_pin(self, tmp_path: Path):
        (tmp_path / "package.json").write_text(json.dumps({"packageManager": "pnpm@8.6.0"}))
        pkg = tmp_path / "packages" / "a"
        pkg.mkdir(parents=True)
        (pkg / "package.json").write_text(json.dumps({"name": "a"}))

        result = PackageJsonSpecSource().load_project_spec(pkg)

        assert isinstance(result, Found)
        assert result.spec == Descriptor(name="pnpm", range="8.6.0")
        assert result.target == str((tmp_path / "package.json").resolve())

    def test_nearest_pin_wins(self, tmp_path: Path):
        (tmp_path / "package.json").write_text(json.dumps({"packageManager": "pnpm@8.6.0"}))
        pkg = tmp_path / "packages" / "a"
        pkg.mkdir(parents=True)
        (pkg / "package.json").write_text(json.dumps({"packageManager": "yarn@1.22.19"}))

        result = PackageJsonSpecSource().load_project_spec(pkg)
        assert result.spec == Descriptor(name="yarn", range="1.22.19")

    def test_unpinned_workspace_targets_topmost_manifest(self, tmp_path: Path):
        (tmp_path / "package.json").write_text(json.dumps({"private": True}))
        pkg = tmp_path / "packages" / "a"
        pkg.mkdir(parents=True)
        (pkg / "package.json").write_text(json.dumps({"name": "a"}))

        result = PackageJsonSpecSource().load_project_spec(pkg)
        assert result == NoSpec(target=str((tmp_path / "package.json").resolve()))

    def test_no_project(self, tmp_path: Path):
        assert isinstance(PackageJsonSpecSource().load_project_spec(tmp_path), NoProject)

    def test_no_spec(self, tmp_path: Path):
        (tmp_path / "package.json").write_text(json.dumps({"name": "app"}))
        result = PackageJsonSpecSource().load_project_spec(tmp_path)
        assert result == NoSpec(target=str((tmp_path / "package.json").resolve()))

    def test_found(self, tmp_path: Path):
        (tmp_path / "package.json").write_text(json.dumps({"packageManager": "pnpm@8.6.0"}))
        result = PackageJsonSpecSource().load_project_spec(tmp_path)
        assert isinstance(result, Found)
        assert result.spec == Descriptor(name="pnpm", range="8.6.0")

    def test_invalid_json(self, tmp_path: Path):
        (tmp_path / "package.json").write_text("{ nope")
        with pytest.raises(InvalidProjectSpec, match="Invalid JSON"):
            PackageJsonSpecSource().load_project_spec(tmp_path)

    def test_range_pin_rejected(self, tmp_path: Path):
        (tmp_path / "package.json").write_text(json.dumps({"packageManager": "pnpm@^8"}))
        with pytest.raises(InvalidProjectSpec):
            PackageJsonSpecSource().load_project_spec(tmp_path)

    def test_write_preserves_indentation(self, tmp_path: Path):
        manifest = tmp_path / "package.json"
        manifest.write_text('{\n    "name": "app"\n}\n')

        PackageJsonSpecSource().write_project_spec(tmp_path, _prepared())

        assert manifest.read_text() == (
            '{\n    "name": "app",\n    "packageManager": "pnpm@8.6.0+sha512.abc"\n}\n'
        )

    def test_write_tabs(self, tmp_path: Path):
        manifest = tmp_path / "package.json"
        manifest.write_text('{\n\t"name": "app"\n}')

        PackageJsonSpecSource().write_project_spec(tmp_path, _prepared())

        assert manifest.read_text() == '{\n\t"name": "app",\n\t"packageManager": "pnpm@8.6.0+sha512.abc"\n}'

    def test_written_pin_reads_back(self, tmp_path: Path):
        (tmp_path / "package.json").write_text('{"name": "app"}\n')
        source = PackageJsonSpecSource()
        source.write_project_spec(tmp_path, _prepared())

        result = source.load_project_spec(tmp_path)
        assert isinstance(result, Found)
        assert result.spec.range == "8.6.0+sha512.abc"


# ── Install folder ───────────────────────────────────────────────────


def _make_tarball(path: Path, files: dict[str, str]) -> str:
    """Write an npm-style tarball (everything under ``package/``); return its sha512."""
    with tarfile.open(path, "w:gz") as tf:
        for name, content in files.items():
            data = content.encode("utf-8")
            info = tarfile.TarInfo(f"package/{name}")
            info.size = len(data)
            info.mode = 0o755
            tf.addfile(info, io.BytesIO(data))
    return hashlib.sha512(path.read_bytes()).hexdigest()


class TestInstallFolder:
    @pytest.fixture
    def dist(self, tmp_path: Path) -> Path:
        d = tmp_path / "dist"
        d.mkdir()
        return d

    @pytest.fixture
    def root(self, tmp_path: Path) -> Path:
        return tmp_path / "install"

    def _tgz_spec(self, dist: Path) -> RangeSpec:
        return RangeSpec(
            url=_file_url(dist / "pnpm-{}.tgz"),
            bin={"pnpm": "./bin/pnpm.cjs"},
            registry=RegistrySpec(package="pnpm"),
        )

    def test_install_tarball(self, dist, root):
        digest = _make_tarball(dist / "pnpm-8.6.0.tgz", {
            "package.json": '{"name": "pnpm"}',
            "bin/pnpm.cjs": "console.log('hi')",
        })

        info = InstallFolder().install_version(root, Locator(name="pnpm", reference="8.6.0"), self._tgz_spec(dist))

        location = Path(info.location)
        assert location == root / "pnpm" / "8.6.0"
        assert info.hash == f"sha512.{digest}"
        assert info.bin == {"pnpm": "./bin/pnpm.cjs"}
        assert (location / "bin" / "pnpm.cjs").read_text() == "console.log('hi')"
        assert (location / MARKER_FILE).is_file()
        assert list(root.joinpath("pnpm").glob(".install_*")) == []

    def test_verified_hash(self, dist, root):
        digest = _make_tarball(dist / "pnpm-8.6.0.tgz", {"bin/pnpm.cjs": ""})
        locator = Locator(name="pnpm", reference=f"8.6.0+sha512.{digest}")

        info = InstallFolder().install_version(root, locator, self._tgz_spec(dist))
        assert info.hash == f"sha512.{digest}"

    def test_hash_mismatch(self, dist, root):
        _make_tarball(dist / "pnpm-8.6.0.tgz", {"bin/pnpm.cjs": ""})
        locator = Locator(name="pnpm", reference="8.6.0+sha512.0000")

        with pytest.raises(IntegrityError, match="Mismatch hashes"):
            InstallFolder().install_version(root, locator, self._tgz_spec(dist))
        assert not (root / "pnpm" / "8.6.0").exists()

    def test_existing_install_reused(self, dist, root):
        archive = dist / "pnpm-8.6.0.tgz"
        _make_tarball(archive, {"bin/pnpm.cjs": ""})
        folder = InstallFolder()
        locator = Locator(name="pnpm", reference="8.6.0")

        first = folder.install_version(root, locator, self._tgz_spec(dist))
        archive.unlink()
        second = folder.install_version(root, locator, self._tgz_spec(dist))
        assert second == first

    def test_single_file(self, dist, root):
        (dist / "yarn-3.6.4.js").write_text("// yarn")
        spec = RangeSpec(
            url=_file_url(dist / "yarn-{}.js"),
            bin=["yarn", "yarnpkg"],
            registry=RegistrySpec(type="url", url="https://example.test/tags"),
        )

        info = InstallFolder().install_version(root, Locator(name="yarn", reference="3.6.4"), spec)

        assert info.bin == {"yarn": "./yarn-3.6.4.js", "yarnpkg": "./yarn-3.6.4.js"}
        assert (Path(info.location) / "yarn-3.6.4.js").read_text() == "// yarn"

    def test_custom_url_with_pinned_hash(self, dist, root):
        tool = dist / "mytool.js"
        tool.write_text("// custom")
        digest = hashlib.sha512(tool.read_bytes()).hexdigest()
        url = _file_url(tool)
        spec = RangeSpec(url=url, registry=RegistrySpec(type="url", url=url))

        info = InstallFolder().install_version(
            root, Locator(name="mytool", reference=f"{url}+sha512.{digest}"), spec,
        )
        assert info.hash == f"sha512.{digest}"
        assert info.bin == {}

    def test_find_installed_version(self, dist, root):
        folder = InstallFolder()
        for version in ("8.6.0", "8.15.9"):
            _make_tarball(dist / f"pnpm-{version}.tgz", {"bin/pnpm.cjs": ""})
            folder.install_version(root, Locator(name="pnpm", reference=version), self._tgz_spec(dist))
        # Interrupted install: no marker
        (root / "pnpm" / "8.99.0").mkdir()

        assert folder.find_installed_version(root, Descriptor(name="pnpm", range="^8.0.0")) == "8.15.9"
        assert folder.find_installed_version(root, Descriptor(name="pnpm", range="~8.6.0")) == "8.6.0"
        assert folder.find_installed_version(root, Descriptor(name="pnpm", range="^9.0.0")) is None
        assert folder.find_installed_version(root, Descriptor(name="yarn", range="*")) is None

    def test_clean(self, dist, root):
        _make_tarball(dist / "pnpm-8.6.0.tgz", {"bin/pnpm.cjs": ""})
        folder = InstallFolder()
        folder.install_version(root, Locator(name="pnpm", reference="8.6.0"), self._tgz_spec(dist))

        folder.clean(root)
        assert not root.exists()

    def test_split_hash(self):
        assert split_hash("8.6.0+sha224.abc") == ("sha224", "abc")
        assert split_hash("8.6.0") == ("sha512", None)
        assert split_url_hash("https://x.test/a.js+sha1.beef") == ("https://x.test/a.js", "sha1", "beef")
        assert split_url_hash("https://x.test/a.js") == ("https://x.test/a.js", "sha512", None)


# ── HTTP registry ────────────────────────────────────────────────────


class TestHttpRegistryClient:
    def test_npm_packument(self, tmp_path: Path):
        registry_dir = tmp_path / "registry"
        registry_dir.mkdir()
        (registry_dir / "pnpm").write_text(json.dumps({
            "dist-tags": {"latest": "8.15.9", "next-9": "9.0.0-rc.0"},
            "versions": {"8.6.0": {}, "8.15.9": {}, "9.0.0-rc.0": {}},
        }))
        client = HttpRegistryClient(npm_registry=_file_url(registry_dir) + "/")
        source = RegistrySpec(type="npm", package="pnpm")

        assert client.fetch_available_versions(source) == ["8.6.0", "8.15.9", "9.0.0-rc.0"]
        assert client.fetch_available_tags(source)["next-9"] == "9.0.0-rc.0"
        assert client.fetch_latest_stable_version(source) == "8.15.9"

    def test_url_document(self, tmp_path: Path):
        doc = tmp_path / "tags.json"
        doc.write_text(json.dumps({
            "latest": {"stable": "4.1.0", "canary": "4.2.0-rc.1"},
            "tags": ["4.0.0", "4.1.0", "4.2.0-rc.1"],
        }))
        client = HttpRegistryClient()
        source = RegistrySpec(type="url", url=_file_url(doc), fields={"tags": "latest", "versions": "tags"})

        assert client.fetch_available_versions(source) == ["4.0.0", "4.1.0", "4.2.0-rc.1"]
        assert client.fetch_available_tags(source) == {"stable": "4.1.0", "canary": "4.2.0-rc.1"}
        # No "latest" tag: "stable" is used
        assert client.fetch_latest_stable_version(source) == "4.1.0"

    def test_no_latest(self, tmp_path: Path):
        doc = tmp_path / "tags.json"
        doc.write_text(json.dumps({"tags": {"canary": "1.0.0-rc.1"}}))
        source = RegistrySpec(type="url", url=_file_url(doc))

        with pytest.raises(LookupError):
            HttpRegistryClient().fetch_latest_stable_version(source)

    def test_npm_spec_needs_package(self):
        with pytest.raises(ValueError):
            HttpRegistryClient().fetch_available_versions(RegistrySpec(type="npm"))


# ── Runner ───────────────────────────────────────────────────────────


class TestSubprocessRunner:
    def test_entry_point_from_bin_map(self, tmp_path: Path):
        (tmp_path / "bin").mkdir()
        (tmp_path / "bin" / "pnpm.cjs").write_text("")
        prepared = _prepared(location=str(tmp_path), bin_map={"pnpm": "./bin/pnpm.cjs"})

        entry = SubprocessRunner().entry_point(prepared, "pnpm")
        assert entry == (tmp_path / "bin" / "pnpm.cjs").resolve()

    def test_entry_point_single_file(self, tmp_path: Path):
        (tmp_path / "mytool.js").write_text("")
        (tmp_path / MARKER_FILE).write_text("{}")
        prepared = _prepared(location=str(tmp_path))

        assert SubprocessRunner().entry_point(prepared, "mytool") == tmp_path / "mytool.js"

    def test_unknown_binary(self, tmp_path: Path):
        prepared = _prepared(location=str(tmp_path), bin_map={"pnpm": "./bin/pnpm.cjs"})
        with pytest.raises(ToolpinError, match="pnpx"):
            SubprocessRunner().entry_point(prepared, "pnpx")

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX shell script")
    def test_exit_code(self, tmp_path: Path):
        script = tmp_path / "tool.sh"
        script.write_text("#!/bin/sh\nexit 7\n")
        script.chmod(0o755)
        prepared = _prepared(location=str(tmp_path), bin_map={"tool": "./tool.sh"})

        assert SubprocessRunner().run_version(prepared, "tool", [], tmp_path) == 7
