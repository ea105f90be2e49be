"""Trigger mode selection for the deployed function."""
import base64
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Union

import pulumi

import naming
from config import DeploymentSpec, GCPResource
from regions import canonicalize
from resolver import ResolvedContext

PUBSUB_PUBLISH_EVENT = "google.pubsub.topic.publish"
SCHEDULE_PAYLOAD = base64.b64encode(b"{}").decode("ascii")


@dataclass(frozen=True)
class HttpTrigger:
    """The function is invoked directly over its HTTPS endpoint."""
    pass


@dataclass(frozen=True)
class EventTrigger:
    event_type: str
    resource: str
    retry: Optional[bool] = None


@dataclass(frozen=True)
class ScheduledTrigger:
    """A scheduler job publishes to a dedicated topic the function listens on.

    Attributes:
        cron: The cron expression of the scheduler job.
        region: Canonical region of the scheduler job.
        time_zone: Time zone the cron expression is evaluated in.
        topic_name: Name of the topic created for the schedule.
        job_name: Name of the scheduler job.
        retry: Failure policy of the function's event trigger, if any.
    """
    cron: str
    region: str
    time_zone: str
    topic_name: str
    job_name: str
    retry: Optional[bool] = None


TriggerMode = Union[HttpTrigger, EventTrigger, ScheduledTrigger]


def select_trigger_mode(spec: DeploymentSpec, context: ResolvedContext) -> TriggerMode:
    if context.scheduled_trigger_requested:
        schedule = spec.schedule
        schedule_name = f"{context.function_name}-schedule"
        mode = ScheduledTrigger(
            cron=schedule.cron,
            region=canonicalize(schedule.region or context.region),
            time_zone=schedule.time_zone,
            topic_name=schedule_name,
            job_name=schedule_name,
            retry=schedule.retry,
        )
    elif spec.trigger_config is not None:
        mode = EventTrigger(
            event_type=spec.trigger_config.event,
            resource=spec.trigger_config.resource,
            retry=spec.trigger_config.retry,
        )
    else:
        mode = HttpTrigger()
    pulumi.log.debug(f"Trigger mode for '{context.function_name}': {type(mode).__name__}")
    return mode


def trigger_resources(
    mode: TriggerMode, context: ResolvedContext, labels: Mapping[str, str]
) -> List[GCPResource]:
    """Supporting resources a trigger mode needs, in creation order."""
    if not isinstance(mode, ScheduledTrigger):
        return []
    topic = GCPResource(
        name=naming.TOPIC,
        type="pubsub.Topic",
        args={"name": mode.topic_name, "project": context.project, "labels": dict(labels)},
    )
    job = GCPResource(
        name=naming.SCHEDULER_JOB,
        type="cloudscheduler.Job",
        args={
            "name": mode.job_name,
            "project": context.project,
            "region": mode.region,
            "description": f"Schedule for function {context.function_name}.",
            "schedule": mode.cron,
            "time_zone": mode.time_zone,
            "pubsub_target": {
                "topic_name": naming.ref(naming.TOPIC, "id"),
                "data": SCHEDULE_PAYLOAD,
            },
        },
    )
    return [topic, job]


def function_trigger_args(mode: TriggerMode) -> Dict[str, Any]:
    """Arguments of the cloud function resource that express the trigger."""
    if isinstance(mode, HttpTrigger):
        return {"trigger_http": True}
    if isinstance(mode, ScheduledTrigger):
        event_trigger = {"event_type": PUBSUB_PUBLISH_EVENT, "resource": naming.ref(naming.TOPIC, "id")}
    else:
        event_trigger = {"event_type": mode.event_type, "resource": mode.resource}
    if mode.retry is not None:
        event_trigger["failure_policy"] = {"retry": mode.retry}
    return {"event_trigger": event_trigger}
