"""Assembly of the fully resolved resource plan handed to Pulumi."""
import dataclasses
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

import yaml

import bundle
import naming
import resolver
import triggers
from config import DeploymentSpec, GCPResource
from errors import UnresolvedReference


@dataclass(frozen=True)
class ResolvedPlan:
    function_name: str
    region: str
    trigger: triggers.TriggerMode
    resources: Tuple[GCPResource, ...]
    artifact: Optional[bundle.Artifact] = None

    def get(self, name: str) -> Optional[GCPResource]:
        for resource in self.resources:
            if resource.name == name:
                return resource
        return None

    @property
    def names(self) -> List[str]:
        return [resource.name for resource in self.resources]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "function_name": self.function_name,
            "region": self.region,
            "trigger": {"mode": type(self.trigger).__name__, **dataclasses.asdict(self.trigger)},
            "artifact": dataclasses.asdict(self.artifact) if self.artifact else None,
            "resources": [
                {
                    "name": r.name,
                    "type": r.type,
                    "args": _render(r.args),
                    "secret_args": list(r.secret_args),
                }
                for r in self.resources
            ],
        }

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), sort_keys=True)


def _render(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _render(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_render(item) for item in value]
    if isinstance(value, (naming.Ref, naming.FileSource)):
        return str(value)
    return value


def _iter_refs(value: Any) -> Iterable[naming.Ref]:
    if isinstance(value, dict):
        for item in value.values():
            yield from _iter_refs(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from _iter_refs(item)
    elif isinstance(value, naming.Ref):
        yield value


def check_references(resources: Iterable[GCPResource]) -> None:
    """Every reference must point at a resource declared earlier in the plan."""
    declared = set()
    for resource in resources:
        for target in _iter_refs(resource.args):
            if target.key not in declared:
                raise UnresolvedReference(f"Resource '{resource.name}' references '{target.key}', which is not declared before it")
        if resource.name in declared:
            raise UnresolvedReference(f"Resource '{resource.name}' is declared twice")
        declared.add(resource.name)


def _bucket(spec: DeploymentSpec, context: resolver.ResolvedContext) -> Optional[GCPResource]:
    if not context.create_bucket:
        return None
    args = {
        "name": context.bucket_name,
        "project": context.project,
        "location": spec.bucket_config.location or context.region,
        "uniform_bucket_level_access": True,
        "labels": dict(spec.labels),
    }
    if spec.bucket_config.lifecycle_delete_age is not None:
        args["lifecycle_rules"] = [{
            "action": {"type": "Delete"},
            "condition": {"age": spec.bucket_config.lifecycle_delete_age},
        }]
    return GCPResource(name=naming.BUCKET, type="storage.Bucket", args=args)


def _bucket_ref(context: resolver.ResolvedContext) -> Union[naming.Ref, str]:
    return naming.ref(naming.BUCKET, "name") if context.create_bucket else context.bucket_name


def _bundle(context: resolver.ResolvedContext, artifact: Optional[bundle.Artifact]) -> Optional[GCPResource]:
    if artifact is None:
        return None
    return GCPResource(
        name=naming.BUNDLE,
        type="storage.BucketObject",
        args={
            "name": artifact.object_name,
            "bucket": _bucket_ref(context),
            "source": naming.FileSource(artifact.path),
        },
    )


def _service_account(context: resolver.ResolvedContext) -> Optional[GCPResource]:
    if not context.create_service_account:
        return None
    return GCPResource(
        name=naming.SERVICE_ACCOUNT,
        type="serviceaccount.Account",
        args={
            "account_id": naming.service_account_id(context.function_name),
            "display_name": f"Cloud Function {context.function_name}.",
            "project": context.project,
        },
    )


def _vpc_connector(spec: DeploymentSpec, context: resolver.ResolvedContext) -> Optional[GCPResource]:
    if not context.create_vpc_connector:
        return None
    connector = spec.vpc_connector
    return GCPResource(
        name=naming.VPC_CONNECTOR,
        type="vpcaccess.Connector",
        args={
            "name": connector.name,
            "project": context.project,
            "region": context.region,
            "network": connector.network,
            "ip_cidr_range": connector.ip_cidr_range,
        },
    )


def _function(
    spec: DeploymentSpec,
    context: resolver.ResolvedContext,
    trigger: triggers.TriggerMode,
) -> GCPResource:
    function_config = spec.function_config
    args: Dict[str, Any] = {
        "name": context.function_name,
        "project": context.project,
        "region": context.region,
        "description": spec.description,
        "runtime": function_config.runtime,
        "available_memory_mb": function_config.memory,
        "max_instances": function_config.instances,
        "timeout": function_config.timeout,
        "entry_point": function_config.entry_point,
        "labels": dict(spec.labels),
    }
    optional = {
        "environment_variables": dict(spec.environment_variables) or None,
        "ingress_settings": spec.ingress_settings,
        "service_account_email": context.service_account_email,
        "vpc_connector": context.vpc_egress_target,
        "vpc_connector_egress_settings": spec.vpc_connector.egress_settings if spec.vpc_connector else None,
    }
    args.update({k: v for k, v in optional.items() if v is not None})

    if spec.source_repository is not None:
        args["source_repository"] = {"url": spec.source_repository.url}
    else:
        args["source_archive_bucket"] = _bucket_ref(context)
        args["source_archive_object"] = naming.ref(naming.BUNDLE, "name")

    args.update(triggers.function_trigger_args(trigger))
    secret_args = ("environment_variables",) if "environment_variables" in args else ()
    return GCPResource(name=naming.FUNCTION, type="cloudfunctions.Function", args=args, secret_args=secret_args)


def _iam_bindings(spec: DeploymentSpec, context: resolver.ResolvedContext) -> List[GCPResource]:
    bindings = []
    for role, members in sorted(spec.iam.items()):
        bindings.append(GCPResource(
            name=naming.iam_binding_key(role),
            type="cloudfunctions.FunctionIamBinding",
            args={
                "project": context.project,
                "region": context.region,
                "cloud_function": naming.ref(naming.FUNCTION, "name"),
                "role": role,
                "members": sorted(members),
            },
        ))
    return bindings


def emit_plan(
    spec: DeploymentSpec,
    context: resolver.ResolvedContext,
    trigger: triggers.TriggerMode,
    artifact: Optional[bundle.Artifact] = None,
) -> ResolvedPlan:
    candidates = [
        _bucket(spec, context),
        _bundle(context, artifact),
        _service_account(context),
        _vpc_connector(spec, context),
        *triggers.trigger_resources(trigger, context, spec.labels),
        _function(spec, context, trigger),
        *_iam_bindings(spec, context),
    ]
    resources = tuple(r for r in candidates if r is not None)
    check_references(resources)
    return ResolvedPlan(
        function_name=context.function_name,
        region=context.region,
        trigger=trigger,
        resources=resources,
        artifact=artifact,
    )


Packager = Callable[..., bundle.Artifact]


def resolve_plan(spec: DeploymentSpec, packager: Packager = bundle.name_artifact) -> ResolvedPlan:
    """Resolve `spec` into a plan; every configuration error is raised before anything is created."""
    context = resolver.resolve(spec)
    trigger = triggers.select_trigger_mode(spec, context)
    artifact = None
    if spec.source_repository is None:
        bundle_config = spec.bundle_config
        artifact = packager(
            bundle_config.source_dir,
            bundle_config.excludes,
            bundle_config.output_path or bundle.default_output_path(context.function_name),
        )
    return emit_plan(spec, context, trigger, artifact)
