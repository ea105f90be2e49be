"""Resource keys, generated names and the references between plan descriptors."""
import hashlib
import re
from dataclasses import dataclass
from typing import Optional

SECRET_PREFIX = "secret:"

# Keys of the descriptors a plan can contain.
BUCKET = "bucket"
BUNDLE = "bundle"
SERVICE_ACCOUNT = "service_account"
VPC_CONNECTOR = "vpc_connector"
TOPIC = "topic"
SCHEDULER_JOB = "scheduler_job"
FUNCTION = "function"

# GCP service account ids: 6-30 characters, [a-z][-a-z0-9]*[a-z0-9].
_ACCOUNT_ID_MIN = 6
_ACCOUNT_ID_MAX = 30


@dataclass(frozen=True)
class Ref:
    """An output attribute of another descriptor in the same plan."""
    key: str
    attr: str = "id"

    def __str__(self) -> str:
        return f"ref:{self.key}.{self.attr}"


@dataclass(frozen=True)
class FileSource:
    """A local file uploaded as the content of a storage object."""
    path: str

    def __str__(self) -> str:
        return f"file:{self.path}"


def ref(key: str, attr: str = "id") -> Ref:
    return Ref(key, attr)


def prefixed(prefix: Optional[str], name: str) -> str:
    return f"{prefix}-{name}" if prefix else name


def generated_bucket_name(prefix: Optional[str], name: str) -> str:
    return prefixed(prefix, f"{name}-bundles").lower()


def _short_hash(value: str) -> str:
    return hashlib.sha1(value.encode("utf-8")).hexdigest()[:6]


def _slug(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")


def service_account_id(function_name: str) -> str:
    account_id = f"cf-{_slug(function_name)}".rstrip("-")
    if len(account_id) > _ACCOUNT_ID_MAX:
        head = account_id[:_ACCOUNT_ID_MAX - 7].rstrip("-")
        account_id = f"{head}-{_short_hash(function_name)}"
    if len(account_id) < _ACCOUNT_ID_MIN:
        account_id = f"{account_id}-func"
    return account_id


def iam_binding_key(role: str) -> str:
    return f"iam-{_slug(role)}-{_short_hash(role)}"
