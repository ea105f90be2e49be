"""Values that depend on which optional resources the plan will create."""
from dataclasses import dataclass
from typing import Optional, Union

import pulumi

import naming
from config import DeploymentSpec
from errors import ConfigurationConflict
from regions import canonicalize


@dataclass(frozen=True)
class ResolvedContext:
    project: str
    region: str
    function_name: str
    bucket_name: Optional[str]
    create_bucket: bool
    service_account_email: Optional[Union[naming.Ref, str]]
    create_service_account: bool
    vpc_egress_target: Optional[Union[naming.Ref, str]]
    create_vpc_connector: bool
    # Gates topic creation, scheduler job creation and the trigger mode.
    scheduled_trigger_requested: bool


def _check_source(spec: DeploymentSpec) -> None:
    if spec.bundle_config is not None and spec.source_repository is not None:
        raise ConfigurationConflict("bundle_config and source_repository are mutually exclusive")


def _resolve_bucket_name(spec: DeploymentSpec) -> Optional[str]:
    if spec.bucket_name:
        return spec.bucket_name
    if spec.bucket_config is not None:
        return naming.generated_bucket_name(spec.prefix, spec.name)
    return None


def _resolve_service_account(spec: DeploymentSpec) -> Optional[Union[naming.Ref, str]]:
    account = spec.service_account
    if account is None:
        return None
    if account.create and account.email:
        raise ConfigurationConflict("service_account cannot both create an account and use an existing email")
    if account.create:
        return naming.ref(naming.SERVICE_ACCOUNT, "email")
    if not account.email:
        raise ConfigurationConflict("service_account needs either create: true or an existing email")
    return account.email


def _resolve_vpc_egress_target(spec: DeploymentSpec) -> Optional[Union[naming.Ref, str]]:
    connector = spec.vpc_connector
    if connector is None:
        return None
    if not connector.create:
        return connector.name
    if not connector.network or not connector.ip_cidr_range:
        raise ConfigurationConflict(
            f"vpc_connector '{connector.name}' is created by this deployment and needs network and ip_cidr_range"
        )
    return naming.ref(naming.VPC_CONNECTOR, "id")


def resolve(spec: DeploymentSpec) -> ResolvedContext:
    """Resolve derived values for `spec`, failing fast on invalid combinations.

    Raises:
        ConfigurationConflict: if mutually exclusive options are both set or
            the source archive bucket cannot be resolved.
    """
    _check_source(spec)

    bucket_name = _resolve_bucket_name(spec)
    if spec.source_repository is None:
        if bucket_name is None:
            raise ConfigurationConflict(
                "No bucket for the source archive: set bucket_name or bucket_config, or use source_repository"
            )
        if spec.bundle_config is None:
            raise ConfigurationConflict("One of bundle_config or source_repository is required")

    region = canonicalize(spec.region)
    if region != spec.region:
        pulumi.log.info(f"Region alias '{spec.region}' resolved to '{region}'")

    scheduled = spec.trigger_config is None and spec.schedule is not None
    if spec.trigger_config is not None and spec.schedule is not None:
        pulumi.log.warn(
            f"Both trigger_config and schedule are set for '{spec.name}'; using trigger_config and ignoring the schedule"
        )

    return ResolvedContext(
        project=spec.project,
        region=region,
        function_name=naming.prefixed(spec.prefix, spec.name),
        bucket_name=bucket_name,
        create_bucket=spec.bucket_config is not None,
        service_account_email=_resolve_service_account(spec),
        create_service_account=spec.service_account is not None and spec.service_account.create,
        vpc_egress_target=_resolve_vpc_egress_target(spec),
        create_vpc_connector=spec.vpc_connector is not None and spec.vpc_connector.create,
        scheduled_trigger_requested=scheduled,
    )
