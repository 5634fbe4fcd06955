"""
별점 API 통합 테스트
"""
import pytest
from sqlalchemy.exc import OperationalError

from storerate.models.store import Store
from storerate.models.user import UserRole
from storerate.services.rating_store import RatingStore
from storerate.services.store_aggregates import StoreAggregateMaintainer


def submit(client, headers, store_id, score, **extra):
    return client.post(
        "/api/ratings",
        json={"store_id": store_id, "score": score, **extra},
        headers=headers,
    )


def store_stats(client, store_id):
    response = client.get(f"/api/ratings/store/{store_id}/stats")
    assert response.status_code == 200
    return response.json()


class TestSubmitRating:
    """별점 등록"""

    def test_submit_updates_store_aggregate(self, client, make_user, store, auth_headers):
        user = make_user()
        response = submit(client, auth_headers(user), store.id, 4, review="친절해요")

        assert response.status_code == 201
        data = response.json()
        assert data["score"] == 4
        assert data["review"] == "친절해요"
        assert data["user_id"] == user.id
        assert data["store_name"] == "테스트 매장"

        detail = client.get(f"/api/stores/{store.id}").json()
        assert detail["average_rating"] == 4.0
        assert detail["total_ratings"] == 1

    def test_duplicate_rating(self, client, make_user, store, auth_headers):
        headers = auth_headers(make_user())
        assert submit(client, headers, store.id, 5).status_code == 201

        response = submit(client, headers, store.id, 3)

        assert response.status_code == 409
        assert response.json()["code"] == "duplicate_rating"
        # 집계는 첫 별점 기준 그대로
        assert store_stats(client, store.id)["total_ratings"] == 1

    def test_concurrent_duplicate_caught_by_constraint(
        self, client, make_user, store, auth_headers, monkeypatch
    ):
        """사전 확인을 통과한 두 번째 요청도 유니크 제약으로 거부"""
        headers = auth_headers(make_user())
        assert submit(client, headers, store.id, 5).status_code == 201

        async def no_existing(self, user_id, store_id):
            return None

        monkeypatch.setattr(RatingStore, "find_by_user_and_store", no_existing)
        response = submit(client, headers, store.id, 2)

        assert response.status_code == 409
        assert response.json()["code"] == "duplicate_rating"

        stats = store_stats(client, store.id)
        assert stats["total_ratings"] == 1
        assert stats["average_rating"] == 5.0

    @pytest.mark.parametrize("score", [1, 5])
    def test_boundary_scores(self, client, make_user, store, auth_headers, score):
        response = submit(client, auth_headers(make_user()), store.id, score)
        assert response.status_code == 201
        assert response.json()["score"] == score

    @pytest.mark.parametrize("score", [0, 6])
    def test_out_of_range_score(self, client, make_user, store, auth_headers, score):
        response = submit(client, auth_headers(make_user()), store.id, score)

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_score"
        assert store_stats(client, store.id)["total_ratings"] == 0

    @pytest.mark.parametrize("score", [3.5, "abc", None, True, "3", 4.0])
    def test_non_integer_score(self, client, make_user, store, auth_headers, score):
        response = submit(client, auth_headers(make_user()), store.id, score)

        assert response.status_code == 422
        assert response.json()["code"] == "validation_error"
        assert store_stats(client, store.id)["total_ratings"] == 0

    @pytest.mark.parametrize("flag", ["yes", 1])
    def test_non_boolean_anonymous_flag(self, client, make_user, store, auth_headers, flag):
        response = submit(client, auth_headers(make_user()), store.id, 4, is_anonymous=flag)

        assert response.status_code == 422
        assert store_stats(client, store.id)["total_ratings"] == 0

    def test_review_too_long(self, client, make_user, store, auth_headers):
        response = submit(client, auth_headers(make_user()), store.id, 3, review="가" * 1001)
        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"

    def test_unknown_store(self, client, make_user, auth_headers):
        response = submit(client, auth_headers(make_user()), 9999, 3)
        assert response.status_code == 404
        assert response.json()["code"] == "not_found"

    def test_inactive_store(self, client, make_user, make_store, auth_headers):
        closed = make_store(is_active=False)
        response = submit(client, auth_headers(make_user()), closed.id, 3)
        assert response.status_code == 404

    @pytest.mark.parametrize("role", [UserRole.STORE_OWNER, UserRole.ADMIN])
    def test_only_normal_user_can_submit(self, client, make_user, store, auth_headers, role):
        response = submit(client, auth_headers(make_user(role)), store.id, 4)
        assert response.status_code == 403
        assert response.json()["code"] == "forbidden"

    def test_requires_authentication(self, client, store):
        response = client.post("/api/ratings", json={"store_id": store.id, "score": 4})
        assert response.status_code == 401
        assert response.json()["code"] == "unauthenticated"
        assert response.headers["www-authenticate"] == "Bearer"

    def test_invalid_token(self, client, store):
        response = submit(client, {"Authorization": "Bearer garbage"}, store.id, 4)
        assert response.status_code == 401

    def test_inactive_user_rejected(self, client, make_user, store, auth_headers):
        user = make_user(is_active=False)
        response = submit(client, auth_headers(user), store.id, 4)
        assert response.status_code == 401

    def test_user_id_cannot_be_spoofed(self, client, make_user, store, auth_headers):
        """작성자는 항상 인증된 사용자"""
        other = make_user()
        response = submit(client, auth_headers(make_user()), store.id, 4, user_id=other.id)
        assert response.status_code == 422


class TestUpdateRating:
    """별점 수정"""

    def test_author_updates_score(self, client, make_user, store, auth_headers):
        headers = auth_headers(make_user())
        rating_id = submit(client, headers, store.id, 2).json()["id"]

        response = client.put(f"/api/ratings/{rating_id}", json={"score": 5}, headers=headers)

        assert response.status_code == 200
        assert response.json()["score"] == 5
        assert store_stats(client, store.id)["average_rating"] == 5.0

    def test_review_only_update_keeps_aggregate(self, client, make_user, store, auth_headers):
        headers = auth_headers(make_user())
        rating_id = submit(client, headers, store.id, 3).json()["id"]

        response = client.put(
            f"/api/ratings/{rating_id}", json={"review": "다시 방문"}, headers=headers
        )

        assert response.status_code == 200
        assert response.json()["review"] == "다시 방문"
        assert response.json()["score"] == 3
        assert store_stats(client, store.id)["average_rating"] == 3.0

    def test_empty_patch(self, client, make_user, store, auth_headers):
        headers = auth_headers(make_user())
        rating_id = submit(client, headers, store.id, 3).json()["id"]

        response = client.put(f"/api/ratings/{rating_id}", json={}, headers=headers)

        assert response.status_code == 400
        assert response.json()["code"] == "no_changes"

    @pytest.mark.parametrize("score", [0, 6])
    def test_invalid_score_update(self, client, make_user, store, auth_headers, score):
        headers = auth_headers(make_user())
        rating_id = submit(client, headers, store.id, 3).json()["id"]

        response = client.put(f"/api/ratings/{rating_id}", json={"score": score}, headers=headers)

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_score"
        assert store_stats(client, store.id)["average_rating"] == 3.0

    @pytest.mark.parametrize("score", [3.5, "abc", True, "5", 4.0])
    def test_non_integer_score_update(self, client, make_user, store, auth_headers, score):
        headers = auth_headers(make_user())
        rating_id = submit(client, headers, store.id, 3).json()["id"]

        response = client.put(f"/api/ratings/{rating_id}", json={"score": score}, headers=headers)
        assert response.status_code == 422
        assert store_stats(client, store.id)["average_rating"] == 3.0

    def test_store_id_is_immutable(self, client, make_user, make_store, store, auth_headers):
        other_store = make_store()
        headers = auth_headers(make_user())
        rating_id = submit(client, headers, store.id, 3).json()["id"]

        response = client.put(
            f"/api/ratings/{rating_id}", json={"store_id": other_store.id}, headers=headers
        )
        assert response.status_code == 422

    def test_other_user_forbidden(self, client, make_user, store, auth_headers):
        rating_id = submit(client, auth_headers(make_user()), store.id, 3).json()["id"]

        response = client.put(
            f"/api/ratings/{rating_id}", json={"score": 1}, headers=auth_headers(make_user())
        )

        assert response.status_code == 403
        assert store_stats(client, store.id)["average_rating"] == 3.0

    def test_store_owner_cannot_update_ratings_of_own_store(
        self, client, make_user, owner, store, auth_headers
    ):
        rating_id = submit(client, auth_headers(make_user()), store.id, 1).json()["id"]

        response = client.put(
            f"/api/ratings/{rating_id}", json={"score": 5}, headers=auth_headers(owner)
        )
        assert response.status_code == 403

    def test_admin_can_update(self, client, make_user, admin, store, auth_headers):
        rating_id = submit(client, auth_headers(make_user()), store.id, 1).json()["id"]

        response = client.put(
            f"/api/ratings/{rating_id}", json={"score": 2}, headers=auth_headers(admin)
        )

        assert response.status_code == 200
        assert store_stats(client, store.id)["average_rating"] == 2.0

    def test_unknown_rating(self, client, make_user, auth_headers):
        response = client.put(
            "/api/ratings/9999", json={"score": 2}, headers=auth_headers(make_user())
        )
        assert response.status_code == 404


class TestDeleteRating:
    """별점 삭제"""

    def test_aggregate_after_submit_and_delete(self, client, make_user, store, auth_headers):
        """{4, 5, 3} → 4.0, 3점 삭제 후 {4, 5} → 4.5"""
        users = [make_user() for _ in range(3)]
        ids = [
            submit(client, auth_headers(user), store.id, score).json()["id"]
            for user, score in zip(users, [4, 5, 3])
        ]

        stats = store_stats(client, store.id)
        assert stats["average_rating"] == 4.0
        assert stats["total_ratings"] == 3

        response = client.delete(f"/api/ratings/{ids[2]}", headers=auth_headers(users[2]))
        assert response.status_code == 200

        stats = store_stats(client, store.id)
        assert stats["average_rating"] == 4.5
        assert stats["total_ratings"] == 2

        detail = client.get(f"/api/stores/{store.id}").json()
        assert detail["average_rating"] == 4.5
        assert detail["total_ratings"] == 2

    def test_delete_last_rating_resets_aggregate(self, client, make_user, store, auth_headers):
        headers = auth_headers(make_user())
        rating_id = submit(client, headers, store.id, 5).json()["id"]

        assert client.delete(f"/api/ratings/{rating_id}", headers=headers).status_code == 200

        detail = client.get(f"/api/stores/{store.id}").json()
        assert detail["average_rating"] == 0.0
        assert detail["total_ratings"] == 0

    def test_resubmit_after_delete(self, client, make_user, store, auth_headers):
        headers = auth_headers(make_user())
        rating_id = submit(client, headers, store.id, 5).json()["id"]
        client.delete(f"/api/ratings/{rating_id}", headers=headers)

        assert submit(client, headers, store.id, 2).status_code == 201

    def test_other_user_forbidden(self, client, make_user, store, auth_headers):
        rating_id = submit(client, auth_headers(make_user()), store.id, 3).json()["id"]

        response = client.delete(f"/api/ratings/{rating_id}", headers=auth_headers(make_user()))

        assert response.status_code == 403
        assert store_stats(client, store.id)["total_ratings"] == 1

    def test_admin_can_delete(self, client, make_user, admin, store, auth_headers):
        rating_id = submit(client, auth_headers(make_user()), store.id, 3).json()["id"]

        response = client.delete(f"/api/ratings/{rating_id}", headers=auth_headers(admin))

        assert response.status_code == 200
        assert store_stats(client, store.id)["total_ratings"] == 0

    def test_unknown_rating(self, client, admin, auth_headers):
        response = client.delete("/api/ratings/9999", headers=auth_headers(admin))
        assert response.status_code == 404


class TestStoreRatings:
    """매장 별점 목록 (공개)"""

    def test_anonymous_rating_redaction(
        self, client, make_user, admin, owner, store, auth_headers
    ):
        author = make_user(name="작성자")
        submit(client, auth_headers(author), store.id, 4, review="좋아요", is_anonymous=True)
        url = f"/api/ratings/store/{store.id}"

        # 비로그인
        item = client.get(url).json()["items"][0]
        assert item["user_id"] is None
        assert item["user_name"] == "익명"
        assert item["review"] == "좋아요"
        assert item["is_anonymous"] is True

        # 점주도 작성자를 볼 수 없음
        item = client.get(url, headers=auth_headers(owner)).json()["items"][0]
        assert item["user_id"] is None

        # 작성자 본인
        item = client.get(url, headers=auth_headers(author)).json()["items"][0]
        assert item["user_id"] == author.id
        assert item["user_name"] == "작성자"

        # 관리자
        item = client.get(url, headers=auth_headers(admin)).json()["items"][0]
        assert item["user_id"] == author.id

    def test_invalid_token_treated_as_guest(self, client, make_user, store, auth_headers):
        submit(client, auth_headers(make_user()), store.id, 4, is_anonymous=True)

        response = client.get(
            f"/api/ratings/store/{store.id}", headers={"Authorization": "Bearer garbage"}
        )

        assert response.status_code == 200
        assert response.json()["items"][0]["user_id"] is None

    def test_email_never_exposed(self, client, make_user, store, auth_headers):
        submit(client, auth_headers(make_user()), store.id, 4)
        item = client.get(f"/api/ratings/store/{store.id}").json()["items"][0]
        assert "email" not in item
        assert "user_email" not in item

    def test_includes_statistics(self, client, make_user, store, auth_headers):
        for score, review in [(5, "최고"), (5, None), (2, "별로")]:
            submit(client, auth_headers(make_user()), store.id, score, review=review)

        data = client.get(f"/api/ratings/store/{store.id}").json()
        stats = data["statistics"]

        assert stats["total_ratings"] == 3
        assert stats["average_rating"] == 4.0
        assert stats["review_count"] == 2
        assert stats["distribution"] == {"5": 2, "4": 0, "3": 0, "2": 1, "1": 0}

    def test_filters(self, client, make_user, store, make_rating):
        for score, review in [(5, "최고"), (4, None), (3, "보통"), (1, "")]:
            make_rating(make_user(), store, score, review=review)
        url = f"/api/ratings/store/{store.id}"

        def scores(params):
            items = client.get(url, params=params).json()["items"]
            return sorted(i["score"] for i in items)

        assert scores({"score": 4}) == [4]
        assert scores({"min_score": 3}) == [3, 4, 5]
        assert scores({"max_score": 3}) == [1, 3]
        assert scores({"has_review": "true"}) == [3, 5]
        assert scores({"has_review": "false"}) == [1, 4]

    def test_pagination(self, client, make_user, store, make_rating):
        for score in [1, 2, 3, 4, 5]:
            make_rating(make_user(), store, score)
        url = f"/api/ratings/store/{store.id}"

        params = {"page": 2, "limit": 2, "sort_by": "score", "sort_order": "asc"}
        data = client.get(url, params=params).json()

        assert [i["score"] for i in data["items"]] == [3, 4]
        assert data["pagination"] == {
            "current_page": 2,
            "total_pages": 3,
            "total_items": 5,
            "items_per_page": 2,
            "has_next_page": True,
            "has_prev_page": True,
        }

    def test_limit_over_max_rejected(self, client, store):
        response = client.get(f"/api/ratings/store/{store.id}", params={"limit": 101})
        assert response.status_code == 422

    def test_unknown_sort_falls_back_to_newest(self, client, make_user, store, make_rating):
        first = make_rating(make_user(), store, 5)
        second = make_rating(make_user(), store, 1)

        response = client.get(
            f"/api/ratings/store/{store.id}", params={"sort_by": "password_hash"}
        )

        assert response.status_code == 200
        assert [i["id"] for i in response.json()["items"]] == [second.id, first.id]

    def test_unknown_store(self, client):
        assert client.get("/api/ratings/store/9999").status_code == 404
        assert client.get("/api/ratings/store/9999/stats").status_code == 404

    def test_empty_store_stats(self, client, store):
        stats = store_stats(client, store.id)
        assert stats["total_ratings"] == 0
        assert stats["average_rating"] == 0.0


class TestUserRatings:
    """사용자 별점 목록"""

    def test_own_ratings_include_anonymous_author(
        self, client, make_user, make_store, auth_headers
    ):
        user = make_user()
        headers = auth_headers(user)
        for store in [make_store(), make_store()]:
            submit(client, headers, store.id, 4, is_anonymous=True)

        data = client.get(f"/api/ratings/user/{user.id}", headers=headers).json()

        assert data["pagination"]["total_items"] == 2
        assert all(item["user_id"] == user.id for item in data["items"])

    def test_other_user_forbidden(self, client, make_user, auth_headers):
        target = make_user()
        response = client.get(f"/api/ratings/user/{target.id}", headers=auth_headers(make_user()))
        assert response.status_code == 403

    def test_admin_can_view(self, client, make_user, admin, auth_headers):
        target = make_user()
        response = client.get(f"/api/ratings/user/{target.id}", headers=auth_headers(admin))
        assert response.status_code == 200


class TestAdminRatings:
    """전체 별점 목록 / 통계 (관리자)"""

    def test_list_all_with_store_filter(
        self, client, make_user, admin, make_store, make_rating, auth_headers
    ):
        store_a, store_b = make_store(), make_store()
        make_rating(make_user(), store_a, 5)
        make_rating(make_user(), store_b, 3)

        data = client.get(
            "/api/ratings", params={"store_id": store_a.id}, headers=auth_headers(admin)
        ).json()

        assert data["pagination"]["total_items"] == 1
        assert data["items"][0]["store_id"] == store_a.id

    @pytest.mark.parametrize("role", [UserRole.NORMAL_USER, UserRole.STORE_OWNER])
    def test_non_admin_forbidden(self, client, make_user, auth_headers, role):
        headers = auth_headers(make_user(role))
        assert client.get("/api/ratings", headers=headers).status_code == 403
        assert client.get("/api/ratings/stats", headers=headers).status_code == 403

    def test_overall_stats(self, client, make_user, admin, make_store, auth_headers):
        store_a, store_b = make_store(), make_store()
        user = make_user()
        submit(client, auth_headers(user), store_a.id, 5, review="굿")
        submit(client, auth_headers(user), store_b.id, 2)

        stats = client.get("/api/ratings/stats", headers=auth_headers(admin)).json()

        assert stats["total_ratings"] == 2
        assert stats["average_rating"] == 3.5
        assert stats["review_count"] == 1
        assert stats["rated_stores"] == 2
        assert stats["rating_users"] == 1
        assert stats["recent_ratings"] == 2

    def test_recompute_repairs_drift(
        self, client, db_session, make_user, admin, store, make_rating, auth_headers
    ):
        make_rating(make_user(), store, 5)
        make_rating(make_user(), store, 2)

        # 직접 넣은 별점은 집계에 반영되지 않은 상태
        assert client.get(f"/api/stores/{store.id}").json()["total_ratings"] == 0

        response = client.post("/api/admin/stores/recompute", headers=auth_headers(admin))
        assert response.status_code == 200
        assert response.json()["stores"] == 1

        detail = client.get(f"/api/stores/{store.id}").json()
        assert detail["total_ratings"] == 2
        assert detail["average_rating"] == 3.5

        db_session.expire_all()
        refreshed = db_session.get(Store, store.id)
        assert refreshed.total_ratings == 2


def break_recompute(monkeypatch):
    """집계 갱신 단계에서 DB 연결이 끊긴 상황"""

    async def recompute(self, store_id):
        raise OperationalError("UPDATE stores", {}, Exception("connection lost"))

    monkeypatch.setattr(StoreAggregateMaintainer, "recompute", recompute)


class TestStorageFailure:
    """집계 갱신 실패 시 트랜잭션 롤백"""

    def test_submit_rolled_back(self, client, make_user, store, auth_headers, monkeypatch):
        headers = auth_headers(make_user())
        break_recompute(monkeypatch)

        response = submit(client, headers, store.id, 4)

        assert response.status_code == 503
        assert response.json()["code"] == "storage_error"

        monkeypatch.undo()
        # 별점 행이 남아있지 않으므로 다시 등록 가능
        assert store_stats(client, store.id)["total_ratings"] == 0
        assert submit(client, headers, store.id, 4).status_code == 201

    def test_update_rolled_back(self, client, make_user, store, auth_headers, monkeypatch):
        user = make_user()
        headers = auth_headers(user)
        rating_id = submit(client, headers, store.id, 3).json()["id"]
        break_recompute(monkeypatch)

        response = client.put(f"/api/ratings/{rating_id}", json={"score": 5}, headers=headers)

        assert response.status_code == 503
        assert response.json()["code"] == "storage_error"

        monkeypatch.undo()
        items = client.get(f"/api/ratings/user/{user.id}", headers=headers).json()["items"]
        assert [item["score"] for item in items] == [3]
        assert store_stats(client, store.id)["average_rating"] == 3.0

    def test_delete_rolled_back(self, client, make_user, store, auth_headers, monkeypatch):
        headers = auth_headers(make_user())
        rating_id = submit(client, headers, store.id, 5).json()["id"]
        break_recompute(monkeypatch)

        response = client.delete(f"/api/ratings/{rating_id}", headers=headers)

        assert response.status_code == 503
        assert response.json()["code"] == "storage_error"

        monkeypatch.undo()
        stats = store_stats(client, store.id)
        assert stats["total_ratings"] == 1
        assert stats["average_rating"] == 5.0
        assert client.delete(f"/api/ratings/{rating_id}", headers=headers).status_code == 200
