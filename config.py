"""
This module defines the data structures for the Cloud Function deployment builder.
The dataclasses describe the YAML configuration; `load_config` reads and validates it.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional, Tuple

import yaml

from errors import DuplicateKey, FunctionConfigError


@dataclass(frozen=True)
class GCPResource:
    """One resource the provisioning engine must create.

    `type` is `<pulumi_gcp module>.<class>`, e.g. `storage.Bucket`. Plain
    values in `args` may be `naming.Ref` or `naming.FileSource` markers, and
    user-supplied strings may use the `secret:` prefix.
    Args named in `secret_args` are handed to Pulumi as secrets.
    """
    name: str
    type: str
    args: Dict[str, Any]
    secret_args: Tuple[str, ...] = ()


@dataclass(frozen=True)
class FunctionConfig:
    runtime: str = "python310"
    memory: int = 256
    instances: int = 1
    timeout: int = 180
    entry_point: str = "main"


@dataclass(frozen=True)
class BucketConfig:
    location: Optional[str] = None
    lifecycle_delete_age: Optional[int] = None


@dataclass(frozen=True)
class BundleConfig:
    source_dir: str
    output_path: Optional[str] = None
    excludes: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SourceRepository:
    url: str


@dataclass(frozen=True)
class ServiceAccount:
    create: bool = False
    email: Optional[str] = None


@dataclass(frozen=True)
class VpcConnector:
    name: str
    create: bool = False
    network: Optional[str] = None
    ip_cidr_range: Optional[str] = None
    egress_settings: Optional[str] = None


@dataclass(frozen=True)
class TriggerConfig:
    event: str
    resource: str
    retry: Optional[bool] = None


@dataclass(frozen=True)
class Schedule:
    cron: str
    region: Optional[str] = None
    time_zone: str = "Etc/UTC"
    retry: Optional[bool] = None


@dataclass(frozen=True)
class DeploymentSpec:
    project: str
    name: str
    region: str
    prefix: Optional[str] = None
    description: str = "Managed by Pulumi."
    labels: Mapping[str, str] = field(default_factory=dict)
    environment_variables: Mapping[str, str] = field(default_factory=dict)
    ingress_settings: Optional[str] = None
    function_config: FunctionConfig = field(default_factory=FunctionConfig)
    bucket_name: Optional[str] = None
    bucket_config: Optional[BucketConfig] = None
    bundle_config: Optional[BundleConfig] = None
    source_repository: Optional[SourceRepository] = None
    service_account: Optional[ServiceAccount] = None
    vpc_connector: Optional[VpcConnector] = None
    trigger_config: Optional[TriggerConfig] = None
    schedule: Optional[Schedule] = None
    iam: Mapping[str, FrozenSet[str]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DeploymentSpec":
        for key in REQUIRED_KEYS:
            if key not in data:
                raise FunctionConfigError(f"Missing required configuration key: {key}")
        unknown = set(data) - set(cls.__dataclass_fields__)
        if unknown:
            raise FunctionConfigError(f"Unknown configuration keys: {sorted(unknown)}")

        schedule = data.get("schedule")
        if isinstance(schedule, str):
            schedule = {"cron": schedule}

        bundle = data.get("bundle_config")
        if bundle is not None:
            bundle = dict(bundle)
            bundle["excludes"] = tuple(bundle.get("excludes") or ())

        repository = data.get("source_repository")
        if isinstance(repository, str):
            repository = {"url": repository}

        return cls(
            project=data["project"],
            name=data["name"],
            region=data["region"],
            prefix=data.get("prefix"),
            description=data.get("description", "Managed by Pulumi."),
            labels=dict(data.get("labels") or {}),
            environment_variables=parse_environment(data.get("environment_variables")),
            ingress_settings=data.get("ingress_settings"),
            function_config=_section(FunctionConfig, data.get("function_config")) or FunctionConfig(),
            bucket_name=data.get("bucket_name"),
            bucket_config=_section(BucketConfig, data.get("bucket_config")),
            bundle_config=_section(BundleConfig, bundle),
            source_repository=_section(SourceRepository, repository),
            service_account=_section(ServiceAccount, data.get("service_account")),
            vpc_connector=_section(VpcConnector, data.get("vpc_connector")),
            trigger_config=_section(TriggerConfig, data.get("trigger_config")),
            schedule=_section(Schedule, schedule),
            iam=parse_iam(data.get("iam")),
        )


REQUIRED_KEYS = ["project", "name", "region"]


def _section(section_cls, values: Optional[Mapping[str, Any]]):
    if values is None:
        return None
    if not isinstance(values, Mapping):
        raise FunctionConfigError(f"'{section_cls.__name__}' must be a mapping, got {type(values).__name__}")
    try:
        return section_cls(**values)
    except TypeError as e:
        raise FunctionConfigError(f"Invalid '{section_cls.__name__}' section: {e}") from e


def parse_environment(value: Any) -> Dict[str, str]:
    if not value:
        return {}
    if not isinstance(value, Mapping):
        raise FunctionConfigError(f"'environment_variables' must be a mapping, got {type(value).__name__}")
    environment = {}
    for key, item in value.items():
        if isinstance(item, bool):
            environment[key] = "true" if item else "false"
        elif isinstance(item, (str, int, float)):
            environment[key] = str(item)
        else:
            raise FunctionConfigError(f"Environment variable '{key}' must be a string, number or boolean, got {item!r}")
    return environment


def iam_from_pairs(pairs: Iterable[Tuple[str, Iterable[str]]]) -> Dict[str, FrozenSet[str]]:
    bindings: Dict[str, FrozenSet[str]] = {}
    for role, members in pairs:
        if role in bindings:
            raise DuplicateKey(f"IAM role '{role}' is bound more than once")
        if isinstance(members, str):
            members = [members]
        elif members is None:
            raise FunctionConfigError(f"IAM role '{role}' has no members")
        bindings[role] = frozenset(members)
    return bindings


def parse_iam(value: Any) -> Dict[str, FrozenSet[str]]:
    if not value:
        return {}
    if isinstance(value, Mapping):
        return iam_from_pairs(value.items())
    if isinstance(value, list):
        try:
            return iam_from_pairs((item["role"], item["members"]) for item in value)
        except (KeyError, TypeError) as e:
            raise FunctionConfigError(f"IAM entries need 'role' and 'members': {e}") from e
    raise FunctionConfigError(f"'iam' must be a mapping or a list, got {type(value).__name__}")


class UniqueKeyLoader(yaml.SafeLoader):
    """SafeLoader that rejects repeated mapping keys instead of keeping the last one."""

    def construct_mapping(self, node, deep=False):
        seen = set()
        for key_node, _ in node.value:
            key = self.construct_object(key_node, deep=deep)
            if key in seen:
                raise DuplicateKey(f"Duplicate key '{key}' {key_node.start_mark}")
            seen.add(key)
        return super().construct_mapping(node, deep=deep)


def load_config(file_path: str) -> DeploymentSpec:
    """Load and validate YAML configuration from the given file path."""
    with open(file_path, "r") as file:
        config_data = yaml.load(file, Loader=UniqueKeyLoader)

    if not isinstance(config_data, Mapping):
        raise FunctionConfigError(f"Configuration file '{file_path}' must contain a mapping")

    return DeploymentSpec.from_dict(config_data)
