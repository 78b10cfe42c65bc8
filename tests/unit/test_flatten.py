"""Unit tests for record flattening."""

import copy
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from tests.consts import (
    EXAMPLE_CAMPAIGN,
    EXAMPLE_GROUP,
    EXAMPLE_RECIPIENT,
    EXAMPLE_SECURITY_TEST,
    EXAMPLE_USER,
)
from utils.flatten import (
    flatten_all,
    flatten_campaign,
    flatten_group,
    flatten_recipient,
    flatten_security_test,
    flatten_user,
    join_ints,
    join_names,
)
from utils.schemas import Campaign, GroupRef, Group, Recipient, SecurityTest, User

STARTED_AT = datetime(2019, 4, 2, 15, 2, 38, tzinfo=timezone.utc)


class TestJoinHelpers:
    def test_join_names_keeps_order_and_duplicates(self):
        refs = [GroupRef(name="B"), GroupRef(name="A"), GroupRef(name="B")]
        assert join_names(refs) == "B,A,B"

    def test_join_names_empty(self):
        assert join_names([]) == ""

    def test_join_names_does_not_escape_commas(self):
        """Names containing commas are joined verbatim."""
        refs = [GroupRef(name="Sales, EMEA"), GroupRef(name="Support")]
        assert join_names(refs) == "Sales, EMEA,Support"

    def test_join_ints(self):
        assert join_ints([5, 1, 3]) == "5,1,3"
        assert join_ints([]) == ""


class TestFlattenSecurityTest:
    """Tests for flatten_security_test against the canonical fixture."""

    @pytest.fixture
    def flat(self):
        return flatten_security_test(SecurityTest.model_validate(EXAMPLE_SECURITY_TEST))

    def test_promotes_template_and_landing_page(self, flat):
        assert flat.template_id == 11428
        assert flat.template_name == "CNN Breaking News"
        assert flat.landing_page_id == 1842
        assert flat.landing_page_name == "SEI Landing Page"

    def test_joins_groups_and_categories(self, flat):
        assert flat.all_groups == "Corporate Employees,Volunteers"
        assert flat.all_categories == "Current Events,Other"

    def test_copies_scalars(self, flat):
        assert flat.campaign_id == 3423
        assert flat.pst_id == 16142
        assert flat.status == "Closed"
        assert flat.name == "Corporate Test"
        assert flat.phish_prone_percentage == 0.5
        assert flat.started_at == STARTED_AT
        assert flat.duration == 1

    def test_copies_all_counters(self, flat):
        expected = {
            "scheduled_count": 42,
            "delivered_count": 4,
            "opened_count": 24,
            "clicked_count": 20,
            "replied_count": 0,
            "attachment_open_count": 3,
            "macro_enabled_count": 0,
            "data_entered_count": 0,
            "vulnerable_plugin_count": 0,
            "exploited_count": 2,
            "reported_count": 0,
            "bounced_count": 0,
        }
        dumped = flat.model_dump()
        assert {key: dumped[key] for key in expected} == expected

    def test_no_nested_fields_left(self, flat):
        dumped = flat.model_dump(by_alias=True)
        assert "groups" not in dumped
        assert "template" not in dumped
        assert "landing-page" not in dumped
        assert all(not isinstance(value, (dict, list)) for value in dumped.values())

    def test_negative_counter_passes_through(self):
        payload = {**EXAMPLE_SECURITY_TEST, "clicked_count": -1, "bounced_count": -3}
        flat = flatten_security_test(SecurityTest.model_validate(payload))
        assert flat.clicked_count == -1
        assert flat.bounced_count == -3

    def test_wrong_counter_type_rejected(self):
        payload = {**EXAMPLE_SECURITY_TEST, "clicked_count": "many"}
        with pytest.raises(ValidationError):
            SecurityTest.model_validate(payload)

    def test_missing_optional_start(self):
        payload = {key: value for key, value in EXAMPLE_SECURITY_TEST.items() if key != "started_at"}
        flat = flatten_security_test(SecurityTest.model_validate(payload))
        assert flat.started_at is None


class TestFlattenRecipient:
    @pytest.fixture
    def flat(self):
        return flatten_recipient(Recipient.model_validate(EXAMPLE_RECIPIENT))

    def test_promotes_user(self, flat):
        assert flat.user_id == 264215
        assert flat.user_active_directory_guid is None
        assert flat.user_first_name == "Bob"
        assert flat.user_last_name == "Ross"
        assert flat.user_email == "bob.r@kb4-demo.com"

    def test_promotes_template(self, flat):
        assert flat.template_id == 2
        assert flat.template_name == "Your Amazon Order"

    def test_keeps_funnel_timestamps(self, flat):
        assert flat.scheduled_at == STARTED_AT
        assert flat.data_entered_at == STARTED_AT
        assert flat.attachment_opened_at is None
        assert flat.vulnerable_plugins_at is None
        assert flat.bounced_at is None

    def test_serializes_hyphenated_key(self, flat):
        dumped = flat.model_dump(mode="json", by_alias=True)
        assert "vulnerable-plugins_at" in dumped
        assert dumped["vulnerable-plugins_at"] is None
        assert "user" not in dumped

    def test_network_descriptors(self, flat):
        assert flat.ip == "XX.XX.XXX.XXX"
        assert flat.ip_location == "St.Petersburg, FL"
        assert flat.browser == "Chrome"
        assert flat.browser_version == "48.0"
        assert flat.os == "MacOSX"

    def test_active_directory_guid_carried(self):
        payload = copy.deepcopy(EXAMPLE_RECIPIENT)
        payload["user"]["active_directory_guid"] = "0f1e2d3c"
        flat = flatten_recipient(Recipient.model_validate(payload))
        assert flat.user_active_directory_guid == "0f1e2d3c"

    def test_null_strings_become_empty(self):
        payload = {**EXAMPLE_RECIPIENT, "ip": None, "browser": None}
        flat = flatten_recipient(Recipient.model_validate(payload))
        assert flat.ip == ""
        assert flat.browser == ""


class TestFlattenCampaign:
    @pytest.fixture
    def flat(self):
        return flatten_campaign(Campaign.model_validate(EXAMPLE_CAMPAIGN))

    def test_difficulty_filter(self, flat):
        assert flat.all_difficulty_filter == "1,2,3,4,5"

    def test_groups(self, flat):
        assert flat.all_groups == "Corporate Employees,Volunteers"

    def test_psts_keep_only_ids(self, flat):
        assert flat.all_psts == "16142,16143"
        assert flat.psts_count == 2

    def test_scalars(self, flat):
        assert flat.campaign_id == 242333
        assert flat.hidden is False
        assert flat.frequency == "One Time"
        assert flat.last_run == STARTED_AT

    @pytest.mark.parametrize("levels,expected", [([0], "0"), ([1, 6], "1,6"), ([-2, 3], "-2,3")])
    def test_difficulty_outside_usual_range_passes_through(self, levels, expected):
        payload = {**EXAMPLE_CAMPAIGN, "difficulty_filter": levels}
        flat = flatten_campaign(Campaign.model_validate(payload))
        assert flat.all_difficulty_filter == expected

    def test_null_difficulty_level_becomes_zero(self):
        payload = {**EXAMPLE_CAMPAIGN, "difficulty_filter": [1, None, 3]}
        flat = flatten_campaign(Campaign.model_validate(payload))
        assert flat.all_difficulty_filter == "1,0,3"

    def test_empty_lists(self):
        payload = {**EXAMPLE_CAMPAIGN, "groups": [], "difficulty_filter": [], "psts": []}
        flat = flatten_campaign(Campaign.model_validate(payload))
        assert flat.all_groups == ""
        assert flat.all_difficulty_filter == ""
        assert flat.all_psts == ""


class TestFlattenGroup:
    def test_drops_risk_history(self):
        flat = flatten_group(Group.model_validate(EXAMPLE_GROUP))

        dumped = flat.model_dump()
        assert "risk_score_history" not in dumped
        assert dumped == {
            "id": 3264,
            "name": "Customer Service",
            "group_type": "console_group",
            "adi_guid": "",
            "member_count": 42,
            "current_risk_score": 45.742,
            "status": "active",
        }


class TestFlattenUser:
    def test_joins_groups_and_aliases(self):
        flat = flatten_user(User.model_validate(EXAMPLE_USER))

        assert flat.all_groups == "3264,3265"
        assert flat.all_aliases == "alias_email@kb4-demo.com,wm@kb4-demo.com"
        assert flat.custom_field_1 == "Building A"
        assert flat.provisioning_guid is None
        assert "risk_score_history" not in flat.model_dump()

    def test_null_list_entries_become_zero_values(self):
        payload = {**EXAMPLE_USER, "groups": [3264, None], "aliases": [None, "wm@kb4-demo.com"]}
        flat = flatten_user(User.model_validate(payload))

        assert flat.all_groups == "3264,0"
        assert flat.all_aliases == ",wm@kb4-demo.com"


class TestFlattenAll:
    def test_preserves_order(self):
        tests = [
            SecurityTest.model_validate({**EXAMPLE_SECURITY_TEST, "pst_id": pst_id})
            for pst_id in (30, 10, 20)
        ]
        flat = flatten_all(tests, flatten_security_test)
        assert [test.pst_id for test in flat] == [30, 10, 20]

    def test_deterministic(self):
        test = SecurityTest.model_validate(EXAMPLE_SECURITY_TEST)
        assert flatten_security_test(test) == flatten_security_test(test)
