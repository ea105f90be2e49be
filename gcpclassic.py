import pulumi
import pulumi_gcp as gcp
from typing import Any, Dict

import naming
import triggers
from config import GCPResource
from errors import FunctionConfigError, UnresolvedReference
from plan import ResolvedPlan


def resolve_value(value: Any, resources: Dict[str, Any]) -> Any:
    if isinstance(value, dict):
        return {k: resolve_value(v, resources) for k, v in value.items()}
    elif isinstance(value, list):
        return [resolve_value(item, resources) for item in value]
    elif isinstance(value, naming.Ref):
        if value.key not in resources:
            raise UnresolvedReference(f"Referenced resource '{value.key}' not found.")
        attr_val = getattr(resources[value.key], value.attr, None)
        if attr_val is None:
            raise UnresolvedReference(f"Attribute '{value.attr}' not found on resource '{value.key}'")
        return attr_val
    elif isinstance(value, naming.FileSource):
        return pulumi.FileAsset(value.path)
    elif isinstance(value, str) and value.startswith(naming.SECRET_PREFIX):
        # Fetch secret from Pulumi config
        secret_key = value[len(naming.SECRET_PREFIX):]
        config = pulumi.Config()
        return config.require_secret(secret_key)
    else:
        return value


class GCPResourceBuilder:
    """Creates the `pulumi_gcp` resources of a resolved plan, in plan order."""

    def __init__(self, plan: ResolvedPlan):
        self.plan = plan
        self.resources: Dict[str, Any] = {}

    def generate_resource_name(self, base_name: str) -> str:
        return f"{self.plan.function_name}-{base_name}".lower()

    def resolve_args(self, resource: GCPResource) -> dict:
        resolved_args = {key: resolve_value(value, self.resources) for key, value in resource.args.items()}
        for key in resource.secret_args:
            if key in resolved_args:
                resolved_args[key] = pulumi.Output.secret(resolved_args[key])
        return resolved_args

    def get_resource_class(self, resource_type: str):
        module_name, class_name = resource_type.rsplit(".", 1)
        module = getattr(gcp, module_name, None)
        if not module:
            raise FunctionConfigError(f"GCP module '{module_name}' not found for '{resource_type}'")
        resource_class = getattr(module, class_name, None)
        if resource_class is None:
            raise FunctionConfigError(f"Resource class '{class_name}' not found in module '{module_name}'")
        return resource_class

    def build(self):
        for resource_cfg in self.plan.resources:
            resource_class = self.get_resource_class(resource_cfg.type)
            resolved_args = self.resolve_args(resource_cfg)
            pulumi_name = self.generate_resource_name(resource_cfg.name)
            pulumi.log.debug(f"Resolved args for '{resource_cfg.name}': {sorted(resolved_args)}")
            self.resources[resource_cfg.name] = resource_class(pulumi_name, **resolved_args)
            pulumi.log.info(f"Created resource: {pulumi_name} ({resource_cfg.type})")
        return self.resources

    def outputs(self) -> Dict[str, Any]:
        """Stack outputs of the built resources, keyed by export name."""
        resources = self.resources
        function = resources[naming.FUNCTION]
        outputs: Dict[str, Any] = {"function_name": function.name}
        if isinstance(self.plan.trigger, triggers.HttpTrigger):
            outputs["function_url"] = function.https_trigger_url

        if naming.BUCKET in resources:
            outputs["bucket_name"] = resources[naming.BUCKET].name
        elif naming.BUNDLE in resources:
            outputs["bucket_name"] = pulumi.Output.from_input(self.plan.get(naming.BUNDLE).args["bucket"])
        if naming.BUNDLE in resources:
            outputs["bundle_object_name"] = resources[naming.BUNDLE].name

        if naming.SERVICE_ACCOUNT in resources:
            email = resources[naming.SERVICE_ACCOUNT].email
            outputs["service_account_email"] = email
            outputs["service_account_iam_email"] = pulumi.Output.concat("serviceAccount:", email)
        if naming.VPC_CONNECTOR in resources:
            outputs["vpc_connector_id"] = resources[naming.VPC_CONNECTOR].id
        if naming.TOPIC in resources:
            outputs["schedule_topic_id"] = resources[naming.TOPIC].id
        return outputs
