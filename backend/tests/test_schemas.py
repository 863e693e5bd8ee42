"""
Merit Badge Counselor Backend — Form Validation Tests
======================================================

What:  Tests for ApplicationForm rules, badge list decoding and the
       flattening of validation errors into the 400 envelope.
Why:   Every message here is shown next to a form field; the wording is
       part of the API.
"""

import pytest
from pydantic import ValidationError

from counselor.schemas.application import (
    ApplicationDetail,
    ApplicationForm,
    field_errors,
    parse_badge_list,
)


def errors_by_param(data):
    with pytest.raises(ValidationError) as exc_info:
        ApplicationForm.model_validate(data)
    return {e["param"]: e["msg"] for e in field_errors(exc_info.value)}


class TestApplicationForm:
    """Tests for field rules and their messages."""

    def test_valid_form(self, valid_form_data):
        form = ApplicationForm.model_validate(valid_form_data)
        assert form.first_name == "Jo"
        assert form.age == 30
        assert form.purpose == "Become a Counselor"
        assert form.badges_to_counsel == ["Camping", "First Aid"]
        assert form.badges_to_drop == []
        assert form.is_bsa_volunteer is False

    def test_empty_submission_reports_every_required_field(self):
        errors = errors_by_param({})
        assert errors == {
            "firstName": "First name is required",
            "lastName": "Last name is required",
            "age": "Age must be at least 18",
            "email": "Valid email is required",
            "isVolunteer": "Please indicate if you are a BSA volunteer",
            "purpose": "Please select what you would like to do",
        }

    def test_whitespace_only_names_are_missing(self, valid_form_data):
        valid_form_data["firstName"] = "   "
        assert errors_by_param(valid_form_data) == {"firstName": "First name is required"}

    def test_values_are_trimmed(self, valid_form_data):
        valid_form_data["lastName"] = "  Scout "
        valid_form_data["phone"] = "   "
        form = ApplicationForm.model_validate(valid_form_data)
        assert form.last_name == "Scout"
        assert form.phone is None

    @pytest.mark.parametrize("age", ["17", "0", "-3", "abc", "18.5", ""])
    def test_age_below_18_or_not_a_number(self, valid_form_data, age):
        valid_form_data["age"] = age
        assert errors_by_param(valid_form_data) == {"age": "Age must be at least 18"}

    @pytest.mark.parametrize("age", ["١٩", "+19", "1_9", "19 years"])
    def test_age_must_be_plain_ascii_digits(self, valid_form_data, age):
        valid_form_data["age"] = age
        assert errors_by_param(valid_form_data) == {"age": "Age must be at least 18"}

    @pytest.mark.parametrize("age", ["121", "99999999999", pytest.param("9" * 5000, id="5000-digits")])
    def test_age_above_plausible_range(self, valid_form_data, age):
        valid_form_data["age"] = age
        assert errors_by_param(valid_form_data) == {"age": "Please enter a valid age"}

    @pytest.mark.parametrize("age,expected", [("18", 18), ("120", 120), ("045", 45)])
    def test_age_boundaries_accepted(self, valid_form_data, age, expected):
        valid_form_data["age"] = age
        assert ApplicationForm.model_validate(valid_form_data).age == expected

    @pytest.mark.parametrize("email", ["not-an-email", "jo@", "@scouting.org", "jo scout@scouting.org"])
    def test_invalid_email(self, valid_form_data, email):
        valid_form_data["email"] = email
        assert errors_by_param(valid_form_data) == {"email": "Valid email is required"}

    def test_email_normalized_to_lowercase(self, valid_form_data):
        valid_form_data["email"] = "Jo.Scout@Scouting.ORG"
        assert ApplicationForm.model_validate(valid_form_data).email == "jo.scout@scouting.org"

    def test_volunteer_answer_must_be_yes_or_no(self, valid_form_data):
        valid_form_data["isVolunteer"] = "Maybe"
        assert errors_by_param(valid_form_data) == {
            "isVolunteer": "Please indicate if you are a BSA volunteer"
        }

    def test_volunteer_requires_member_id_and_district(self, valid_form_data):
        valid_form_data["isVolunteer"] = "Yes"
        assert errors_by_param(valid_form_data) == {
            "bsaMemberId": "BSA member ID is required for BSA volunteers",
            "district": "District is required for BSA volunteers",
        }

    def test_volunteer_with_credentials(self, valid_form_data):
        valid_form_data.update(isVolunteer="Yes", bsaMemberId="123456789", district="Pine Valley")
        form = ApplicationForm.model_validate(valid_form_data)
        assert form.is_bsa_volunteer is True
        assert form.bsa_member_id == "123456789"
        assert form.district == "Pine Valley"

    def test_non_volunteer_credentials_are_cleared(self, valid_form_data):
        valid_form_data.update(isVolunteer="No", bsaMemberId="123456789", district="Pine Valley")
        form = ApplicationForm.model_validate(valid_form_data)
        assert form.bsa_member_id is None
        assert form.district is None

    def test_unknown_purpose_rejected(self, valid_form_data):
        valid_form_data["purpose"] = "Become a Scoutmaster"
        assert errors_by_param(valid_form_data) == {
            "purpose": "Please select what you would like to do"
        }

    @pytest.mark.parametrize(
        "purpose",
        ["Become a Counselor", "Change/Add Badges", "Drop Badges", "Update Certifications"],
    )
    def test_every_purpose_accepted(self, valid_form_data, purpose):
        valid_form_data["purpose"] = purpose
        assert ApplicationForm.model_validate(valid_form_data).purpose == purpose

    def test_error_entries_carry_location_and_value(self, valid_form_data):
        valid_form_data["age"] = "17"
        with pytest.raises(ValidationError) as exc_info:
            ApplicationForm.model_validate(valid_form_data)
        assert field_errors(exc_info.value) == [
            {"msg": "Age must be at least 18", "param": "age", "location": "body", "value": "17"}
        ]


class TestParseBadgeList:
    """Badge selections arrive as JSON-encoded arrays of names."""

    def test_json_array(self):
        assert parse_badge_list('["Camping", "First Aid"]') == ["Camping", "First Aid"]

    @pytest.mark.parametrize("raw", [None, "", "not json", "{\"name\": \"Camping\"}", "42", "[unclosed"])
    def test_malformed_or_non_array_is_empty(self, raw):
        assert parse_badge_list(raw) == []

    def test_non_string_and_blank_entries_dropped(self):
        assert parse_badge_list('["Camping", 5, null, "  ", " Swimming "]') == ["Camping", "Swimming"]

    def test_malformed_badges_do_not_fail_the_form(self, valid_form_data):
        valid_form_data["badgesToCounsel"] = "Camping, First Aid"
        form = ApplicationForm.model_validate(valid_form_data)
        assert form.badges_to_counsel == []


class TestApplicationDetail:
    def test_serializes_collections_with_form_names(self):
        detail = ApplicationDetail(
            id=1,
            first_name="Jo",
            last_name="Scout",
            age=30,
            email="jo.scout@scouting.org",
            is_bsa_volunteer=False,
            purpose="Drop Badges",
            badges_to_drop=["Cooking"],
        )
        dumped = detail.model_dump(by_alias=True)
        assert dumped["badgesToDrop"] == ["Cooking"]
        assert dumped["badgesToCounsel"] == []
        assert dumped["first_name"] == "Jo"
        assert dumped["certifications"] == []
