from clientpulse.features.note_intelligence.repository import ClientRepository, merge_personal_details


def test_merge_keeps_order_and_drops_duplicates():
    assert merge_personal_details(["Likes golf", "Has a dog"], ["Has a dog", "Moving to Austin"]) == [
        "Likes golf",
        "Has a dog",
        "Moving to Austin",
    ]


def test_merge_is_capped_at_twenty():
    existing = [f"fact {i}" for i in range(19)]
    merged = merge_personal_details(existing, ["new one", "another", "third"])

    assert len(merged) == 20
    assert merged[-1] == "new one"


def test_personal_details_query_is_tenant_scoped():
    sql, params = ClientRepository.build_personal_details_query("client-1", "user-1", ["a"])

    assert "WHERE id = %s AND user_id = %s" in sql
    assert params[1:] == ("client-1", "user-1")
