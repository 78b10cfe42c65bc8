"""
Record flattening for tabular storage.

Each API record maps to exactly one flat row:
- lists of named sub-objects become one comma-joined string of names
- lists of integers (difficulty filter, PST ids, user group ids) become one
  comma-joined string of decimal values
- singular nested objects (template, landing page, user) are promoted to
  prefixed top-level fields

Order is preserved and nothing is de-duplicated or escaped, so a name that
itself contains a comma cannot be told apart from two names downstream.
"""

from collections.abc import Iterable, Sequence
from typing import Callable, TypeVar

from utils.schemas import (
    Campaign,
    FlatCampaign,
    FlatGroup,
    FlatRecipient,
    FlatSecurityTest,
    FlatUser,
    Group,
    Recipient,
    SecurityTest,
    User,
)

SEPARATOR = ","

RecordT = TypeVar("RecordT")
FlatT = TypeVar("FlatT")


def join_names(items: Iterable[object]) -> str:
    """Join the ``name`` attribute of each item, in order."""
    return SEPARATOR.join(item.name for item in items)


def join_ints(values: Iterable[int]) -> str:
    return SEPARATOR.join(str(value) for value in values)


def flatten_security_test(test: SecurityTest) -> FlatSecurityTest:
    return FlatSecurityTest(
        campaign_id=test.campaign_id,
        pst_id=test.pst_id,
        status=test.status,
        name=test.name,
        all_groups=join_names(test.groups),
        phish_prone_percentage=test.phish_prone_percentage,
        started_at=test.started_at,
        duration=test.duration,
        all_categories=join_names(test.categories),
        template_id=test.template.id,
        template_name=test.template.name,
        landing_page_id=test.landing_page.id,
        landing_page_name=test.landing_page.name,
        scheduled_count=test.scheduled_count,
        delivered_count=test.delivered_count,
        opened_count=test.opened_count,
        clicked_count=test.clicked_count,
        replied_count=test.replied_count,
        attachment_open_count=test.attachment_open_count,
        macro_enabled_count=test.macro_enabled_count,
        data_entered_count=test.data_entered_count,
        vulnerable_plugin_count=test.vulnerable_plugin_count,
        exploited_count=test.exploited_count,
        reported_count=test.reported_count,
        bounced_count=test.bounced_count,
    )


def flatten_recipient(recipient: Recipient) -> FlatRecipient:
    return FlatRecipient(
        recipient_id=recipient.recipient_id,
        pst_id=recipient.pst_id,
        user_id=recipient.user.id,
        user_active_directory_guid=recipient.user.active_directory_guid,
        user_first_name=recipient.user.first_name,
        user_last_name=recipient.user.last_name,
        user_email=recipient.user.email,
        template_id=recipient.template.id,
        template_name=recipient.template.name,
        scheduled_at=recipient.scheduled_at,
        delivered_at=recipient.delivered_at,
        opened_at=recipient.opened_at,
        clicked_at=recipient.clicked_at,
        replied_at=recipient.replied_at,
        attachment_opened_at=recipient.attachment_opened_at,
        macro_enabled_at=recipient.macro_enabled_at,
        data_entered_at=recipient.data_entered_at,
        vulnerable_plugins_at=recipient.vulnerable_plugins_at,
        exploited_at=recipient.exploited_at,
        reported_at=recipient.reported_at,
        bounced_at=recipient.bounced_at,
        ip=recipient.ip,
        ip_location=recipient.ip_location,
        browser=recipient.browser,
        browser_version=recipient.browser_version,
        os=recipient.os,
    )


def flatten_campaign(campaign: Campaign) -> FlatCampaign:
    return FlatCampaign(
        campaign_id=campaign.campaign_id,
        name=campaign.name,
        all_groups=join_names(campaign.groups),
        last_phish_prone_percentage=campaign.last_phish_prone_percentage,
        last_run=campaign.last_run,
        status=campaign.status,
        hidden=campaign.hidden,
        send_duration=campaign.send_duration,
        track_duration=campaign.track_duration,
        frequency=campaign.frequency,
        all_difficulty_filter=join_ints(campaign.difficulty_filter),
        create_date=campaign.create_date,
        psts_count=campaign.psts_count,
        all_psts=join_ints(pst.pst_id for pst in campaign.psts),
    )


def flatten_group(group: Group) -> FlatGroup:
    # risk_score_history has no flat form and is dropped
    return FlatGroup(
        id=group.id,
        name=group.name,
        group_type=group.group_type,
        adi_guid=group.adi_guid,
        member_count=group.member_count,
        current_risk_score=group.current_risk_score,
        status=group.status,
    )


def flatten_user(user: User) -> FlatUser:
    return FlatUser(
        id=user.id,
        employee_number=user.employee_number,
        first_name=user.first_name,
        last_name=user.last_name,
        job_title=user.job_title,
        email=user.email,
        phish_prone_percentage=user.phish_prone_percentage,
        phone_number=user.phone_number,
        extension=user.extension,
        mobile_phone_number=user.mobile_phone_number,
        location=user.location,
        division=user.division,
        manager_name=user.manager_name,
        manager_email=user.manager_email,
        provisioning_managed=user.provisioning_managed,
        provisioning_guid=user.provisioning_guid,
        all_groups=join_ints(user.groups),
        current_risk_score=user.current_risk_score,
        all_aliases=SEPARATOR.join(user.aliases),
        joined_on=user.joined_on,
        last_sign_in=user.last_sign_in,
        status=user.status,
        organization=user.organization,
        department=user.department,
        language=user.language,
        comment=user.comment,
        employee_start_date=user.employee_start_date,
        archived_at=user.archived_at,
        custom_field_1=user.custom_field_1,
        custom_field_2=user.custom_field_2,
        custom_field_3=user.custom_field_3,
        custom_field_4=user.custom_field_4,
        custom_date_1=user.custom_date_1,
        custom_date_2=user.custom_date_2,
    )


def flatten_all(records: Sequence[RecordT], flatten: Callable[[RecordT], FlatT]) -> list[FlatT]:
    """Apply ``flatten`` to every record, keeping API order."""
    return [flatten(record) for record in records]
