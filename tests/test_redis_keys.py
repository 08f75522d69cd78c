from app.store.redis_keys import RK


def test_session_keys():
    rk = RK("abc")
    assert rk.session() == "session:abc"
    assert rk.updates() == "session:abc:updates"


def test_join_code_key_is_upper_case():
    assert RK.join_code("k3x9qa") == "joincode:K3X9QA"


def test_session_id_from_key():
    assert RK.session_id_from_key("session:abc") == "abc"
    assert RK.session_id_from_key("session:abc:updates") is None
    assert RK.session_id_from_key("joincode:ABC123") is None
    assert RK.session_id_from_key("session:") is None
