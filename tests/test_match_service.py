"""MatchService: submitProfile / checkMatch end to end over each store."""
import pytest

from app.core.errors import DuplicateProfileError, ProfileNotFoundError, ProfileValidationError
from app.db import InMemoryProfileStore
from app.models import MatchStatus, PartnerSummary, utcnow
from app.services.match_service import MatchService
from app.services.matching_service import MatchingEngine
from tests.conftest import make_fields


class TestSubmitProfile:

    def test_first_submission_pending(self, service):
        submission = service.submit_profile(make_fields())

        assert submission.result.status is MatchStatus.pending
        assert submission.profile.is_matched is False

    def test_same_major_pair_matched_immediately(self, service, store):
        p1 = service.submit_profile(make_fields(major="Mathematics")).profile
        submission = service.submit_profile(make_fields(major="Mathematics"))
        p2 = submission.profile

        assert submission.result.is_matched
        assert submission.result.partner.id == p1.id
        assert p2.is_matched and p2.matched_with == p1.id
        assert store.get_by_id(p1.id).matched_with == p2.id
        assert store.get_by_id(p2.id).matched_with == p1.id

    def test_normalizes_email_and_institutional_id(self, service):
        profile = service.submit_profile(
            make_fields(email="  Mixed.Case@University.EDU ", institutional_id=" AB1234 ")
        ).profile

        assert profile.email == "mixed.case@university.edu"
        assert profile.institutional_id == "ab1234"

    def test_accepts_web_form_field_names(self, service):
        profile = service.submit_profile({
            "name": "Grace Hopper",
            "email": "grace@university.edu",
            "netId": "gh1906",
            "major": "Mathematics",
            "graduationYear": "2027",
        }).profile

        assert profile.institutional_id == "gh1906"
        assert profile.graduation_year == 2027

    def test_duplicate_email_case_insensitive(self, service, store):
        first = service.submit_profile(make_fields(email="twin@university.edu"))

        with pytest.raises(DuplicateProfileError) as exc_info:
            service.submit_profile(make_fields(email="TWIN@University.edu"))

        assert exc_info.value.field == "email"
        # the duplicate never reached matching, so the first is still waiting
        assert store.get_by_id(first.profile.id).is_matched is False

    def test_duplicate_institutional_id(self, service):
        service.submit_profile(make_fields(institutional_id="zz9999"))

        with pytest.raises(DuplicateProfileError) as exc_info:
            service.submit_profile(make_fields(institutional_id="ZZ9999"))
        assert exc_info.value.field == "institutional_id"

    @pytest.mark.parametrize("overrides, field", [
        ({"email": "not-an-email"}, "email"),
        ({"graduation_year": 2019}, "graduation_year"),
        ({"graduation_year": 2031}, "graduation_year"),
        ({"major": "Alchemy"}, "major"),
        ({"name": "   "}, "name"),
    ])
    def test_invalid_fields(self, service, overrides, field):
        with pytest.raises(ProfileValidationError) as exc_info:
            service.submit_profile(make_fields(**overrides))
        assert field in exc_info.value.errors

    def test_missing_fields_reported_per_field(self, service):
        with pytest.raises(ProfileValidationError) as exc_info:
            service.submit_profile({"name": "Only A Name"})

        assert {"email", "institutional_id", "major", "graduation_year"} <= set(exc_info.value.errors)


class TestCheckMatch:

    def test_pending_then_matched(self, service):
        p1 = service.submit_profile(make_fields(major="Biology")).profile
        assert service.check_match(p1.id).status is MatchStatus.pending

        p2 = service.submit_profile(make_fields(major="Psychology")).profile
        result = service.check_match(p1.id)

        assert result.is_matched
        assert result.summary == PartnerSummary(
            name=p2.name, major="Psychology", graduation_year=p2.graduation_year, email=p2.email
        )

    def test_summary_hides_identifiers(self, service):
        p1 = service.submit_profile(make_fields()).profile
        service.submit_profile(make_fields())

        summary = service.check_match(p1.id).summary

        assert not hasattr(summary, "institutional_id")
        assert not hasattr(summary, "id")

    def test_unknown_profile(self, service):
        with pytest.raises(ProfileNotFoundError):
            service.check_match("0123456789abcdef01234567")

    def test_deleted_partner_heals_to_pending(self, service, store):
        p1 = service.submit_profile(make_fields()).profile
        p2 = service.submit_profile(make_fields()).profile
        store.remove(p2.id)

        result = service.check_match(p1.id)

        assert result.status is MatchStatus.pending
        healed = store.get_by_id(p1.id)
        assert healed.is_matched is False
        assert healed.matched_with is None

    def test_healed_profile_matched_by_next_arrival(self, service, store):
        p1 = service.submit_profile(make_fields()).profile
        p2 = service.submit_profile(make_fields()).profile
        store.remove(p2.id)
        service.check_match(p1.id)

        p3 = service.submit_profile(make_fields()).profile

        assert service.check_match(p1.id).partner.id == p3.id

    def test_check_is_idempotent(self, service):
        p1 = service.submit_profile(make_fields()).profile
        service.submit_profile(make_fields())

        assert service.check_match(p1.id) == service.check_match(p1.id)

    def test_self_reference_is_not_a_match(self):
        store = InMemoryProfileStore()
        service = MatchService(store, MatchingEngine(store))
        p = service.submit_profile(make_fields()).profile
        # a record corrupted into pointing at itself
        store._profiles[p.id] = store._profiles[p.id].matched_to(p.id, utcnow())

        result = service.check_match(p.id)

        assert result.status is MatchStatus.pending
        healed = store.get_by_id(p.id)
        assert healed.is_matched is False
        assert healed.matched_with is None
