from config import Schedule, TriggerConfig
from naming import ref
from resolver import resolve
from triggers import (
    PUBSUB_PUBLISH_EVENT,
    SCHEDULE_PAYLOAD,
    EventTrigger,
    HttpTrigger,
    ScheduledTrigger,
    function_trigger_args,
    select_trigger_mode,
    trigger_resources,
)

STORAGE_TRIGGER = TriggerConfig(event="google.storage.object.finalize", resource="uploads")


def select(spec):
    context = resolve(spec)
    return select_trigger_mode(spec, context), context


class TestSelectTriggerMode:
    def test_schedule_selects_scheduled(self, make_spec) -> None:
        mode, _ = select(make_spec(schedule=Schedule(cron="0 * * * *")))
        assert isinstance(mode, ScheduledTrigger)
        assert mode.cron == "0 * * * *"
        assert mode.region == "europe-west1"
        assert mode.topic_name == "hello-schedule"

    def test_explicit_trigger_wins_over_schedule(self, make_spec) -> None:
        mode, _ = select(make_spec(schedule=Schedule(cron="0 * * * *"), trigger_config=STORAGE_TRIGGER))
        assert mode == EventTrigger(event_type="google.storage.object.finalize", resource="uploads")

    def test_neither_selects_http(self, make_spec) -> None:
        mode, _ = select(make_spec())
        assert mode == HttpTrigger()

    def test_schedule_region_alias(self, make_spec) -> None:
        mode, _ = select(make_spec(schedule=Schedule(cron="*/5 * * * *", region="us-central")))
        assert mode.region == "us-central1"


class TestTriggerResources:
    def test_scheduled_creates_topic_and_job(self, make_spec) -> None:
        mode, context = select(make_spec(schedule=Schedule(cron="0 * * * *")))
        topic, job = trigger_resources(mode, context, {"team": "platform"})
        assert topic.type == "pubsub.Topic"
        assert topic.args["labels"] == {"team": "platform"}
        assert job.type == "cloudscheduler.Job"
        assert job.args["schedule"] == "0 * * * *"
        assert job.args["region"] == "europe-west1"
        assert job.args["pubsub_target"] == {"topic_name": ref("topic", "id"), "data": SCHEDULE_PAYLOAD}

    def test_other_modes_need_nothing(self, make_spec) -> None:
        for spec in (make_spec(), make_spec(trigger_config=STORAGE_TRIGGER)):
            mode, context = select(spec)
            assert trigger_resources(mode, context, {}) == []


class TestFunctionTriggerArgs:
    def test_http(self) -> None:
        assert function_trigger_args(HttpTrigger()) == {"trigger_http": True}

    def test_event_without_retry_has_no_failure_policy(self) -> None:
        args = function_trigger_args(EventTrigger(event_type="e", resource="r"))
        assert args == {"event_trigger": {"event_type": "e", "resource": "r"}}

    def test_event_with_false_retry_keeps_failure_policy(self) -> None:
        args = function_trigger_args(EventTrigger(event_type="e", resource="r", retry=False))
        assert args["event_trigger"]["failure_policy"] == {"retry": False}

    def test_scheduled_listens_on_topic(self, make_spec) -> None:
        mode, _ = select(make_spec(schedule=Schedule(cron="0 * * * *", retry=True)))
        args = function_trigger_args(mode)
        assert args == {
            "event_trigger": {
                "event_type": PUBSUB_PUBLISH_EVENT,
                "resource": ref("topic", "id"),
                "failure_policy": {"retry": True},
            }
        }
        assert "trigger_http" not in args
