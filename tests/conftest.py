import dataclasses

import pytest

from bundle import Artifact
from config import BucketConfig, BundleConfig, DeploymentSpec


@pytest.fixture
def source_dir(tmp_path):
    src = tmp_path / "src"
    (src / "pkg").mkdir(parents=True)
    (src / "main.py").write_text("def main(event, context):\n    return 'ok'\n")
    (src / "requirements.txt").write_text("requests\n")
    (src / "pkg" / "__init__.py").write_text("")
    return src


@pytest.fixture
def make_spec(source_dir, tmp_path):
    base = DeploymentSpec(
        project="my-project",
        name="hello",
        region="europe-west1",
        labels={"team": "platform"},
        bucket_config=BucketConfig(),
        bundle_config=BundleConfig(source_dir=str(source_dir), output_path=str(tmp_path / "out" / "bundle.zip")),
    )

    def factory(**overrides) -> DeploymentSpec:
        return dataclasses.replace(base, **overrides)

    return factory


def fake_packager(source_dir, excludes, output_path):
    return Artifact(path=output_path, digest="0" * 32, object_name=f"bundle-{'0' * 32}.zip")


@pytest.fixture
def packager():
    return fake_packager
