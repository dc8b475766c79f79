from pathlib import Path

import boto3
from dependency_injector import containers, providers

from channels import SlackChannel
from duty.calendar import BusinessCalendar
from duty.directory import MemberDirectory
from duty.selection import build_policy
from duty.service import DutyService
from duty.settings import Settings
from duty.state_store import RotationStateStore
from duty.transaction import AssignmentTransaction


CONFIG_PATH = Path(__file__).parent / "config.yaml"


class Container(containers.DeclarativeContainer):
    config = providers.Configuration(yaml_files=[str(CONFIG_PATH)])

    settings = providers.Singleton(Settings.from_config, config)

    dynamodb = providers.Singleton(boto3.resource, "dynamodb")

    member_directory = providers.Singleton(
        MemberDirectory,
        table_name=settings.provided.members_table_name,
        dynamodb=dynamodb,
    )

    state_store = providers.Singleton(
        RotationStateStore,
        table_name=settings.provided.state_table_name,
        state_id=settings.provided.state_id,
        dynamodb=dynamodb,
    )

    policy = providers.Singleton(build_policy, settings.provided.policy)

    transaction = providers.Singleton(
        AssignmentTransaction,
        directory=member_directory,
        state_store=state_store,
        policy=policy,
    )

    calendar = providers.Singleton(
        BusinessCalendar,
        tz_name=settings.provided.timezone,
        holidays=settings.provided.holidays,
        country=settings.provided.holiday_country,
    )

    slack_channel = providers.Singleton(
        SlackChannel,
        bot_token=settings.provided.slack_bot_token,
        channel_id=settings.provided.slack_channel_id,
    )

    duty_service = providers.Singleton(
        DutyService,
        directory=member_directory,
        state_store=state_store,
        policy=policy,
        transaction=transaction,
        calendar=calendar,
        channel=slack_channel,
    )
