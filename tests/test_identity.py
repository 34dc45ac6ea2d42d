from launchwatch.identity import IdentityGuard


def test_first_seen_once():
    g = IdentityGuard()
    assert g.mark_first_seen("M1") is True
    assert g.mark_first_seen("M1") is False
    assert g.mark_first_seen("M2") is True


def test_processed_once():
    g = IdentityGuard()
    assert g.mark_processed("sig") is True
    assert g.mark_processed("sig") is False


def test_sets_are_independent_and_clearable():
    g = IdentityGuard()
    g.mark_processed("X")
    assert g.mark_first_seen("X") is True
    g.clear()
    assert g.mark_processed("X") is True
    assert g.mark_first_seen("X") is True
