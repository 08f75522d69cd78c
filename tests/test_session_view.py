from app.domain.session.view import build_view
from app.store.models import Participant, SessionRecord

BANK = ["Dog", "Cat", "Owl", "Fox", "Bear", "Wolf", "Deer", "Hawk"]


def _session(status="PLAYING", reveal=False):
    playing = status == "PLAYING"
    return SessionRecord(
        id="s1",
        join_code="ABC123",
        status=status,
        participants=[
            Participant(id="h", display_name="Host", is_host=True),
            Participant(id="o", display_name="Odd", is_outlier=playing),
            Participant(id="c", display_name="Crew"),
        ],
        current_category_name="Animals" if playing else None,
        current_secret_word="Owl" if playing else None,
        category_word_bank=list(BANK) if playing else None,
        outlier_id="o" if playing else None,
        reveal_word_bank=reveal if playing else None,
        created_at=0,
        updated_at=5,
        version=7,
    )


def test_non_outlier_sees_word_and_bank():
    view = build_view(_session(), "c")
    assert view["viewer_id"] == "c"
    assert view["you_are_outlier"] is False
    assert view["current_secret_word"] == "Owl"
    assert view["category_word_bank"] == BANK
    assert view["current_category_name"] == "Animals"


def test_outlier_sees_category_but_not_word():
    view = build_view(_session(), "o")
    assert view["you_are_outlier"] is True
    assert "current_secret_word" not in view
    assert "category_word_bank" not in view
    assert view["current_category_name"] == "Animals"
    assert [p["is_outlier"] for p in view["participants"]] == [False, True, False]


def test_outlier_sees_bank_when_revealed():
    view = build_view(_session(reveal=True), "o")
    assert "current_secret_word" not in view
    assert view["category_word_bank"] == BANK


def test_outlier_identity_never_leaks():
    for viewer in ("h", "c", None, "stranger"):
        view = build_view(_session(), viewer)
        assert "outlier_id" not in view
        assert not any(p["is_outlier"] for p in view["participants"])


def test_non_member_gets_public_fields_only():
    view = build_view(_session(), "stranger")
    assert view["viewer_id"] is None
    assert "current_secret_word" not in view
    assert "category_word_bank" not in view
    assert [p["id"] for p in view["participants"]] == ["h", "o", "c"]


def test_waiting_view_has_no_round_fields():
    view = build_view(_session(status="WAITING"), "h")
    assert view["status"] == "WAITING"
    assert view["version"] == 7
    assert "you_are_outlier" not in view
    assert "current_category_name" not in view
