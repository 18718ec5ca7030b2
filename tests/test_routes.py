"""Integration tests for FastAPI routes."""

from analytics_ingest.config import settings

XLSX_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _upload(client, files, dataset_name=None):
    data = {"dataset_name": dataset_name} if dataset_name else {}
    return client.post("/api/uploads", files=[("files", f) for f in files], data=data)


class TestHealthCheck:
    def test_health_returns_ok(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


# ---------------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------------


class TestUpload:
    def test_upload_workbook(self, client, sample_xlsx_bytes):
        response = _upload(client, [("export.xlsx", sample_xlsx_bytes, XLSX_TYPE)], "November")
        assert response.status_code == 200
        body = response.json()
        assert body["dataset_name"] == "November"
        assert body["counts"] == {
            "posts": 4,
            "daily": 3,
            "followers_daily": 2,
            "followers_demographics": 5,
        }
        assert body["failures"] == []

    def test_default_dataset_name(self, client, sample_csv_bytes):
        response = _upload(client, [("posts.csv", sample_csv_bytes, "text/csv")])
        assert response.status_code == 200
        assert response.json()["dataset_name"].startswith("Upload ")

    def test_corrupt_file_alongside_valid_file(self, client, sample_xlsx_bytes):
        response = _upload(
            client,
            [
                ("broken.xlsx", b"not a workbook", XLSX_TYPE),
                ("export.xlsx", sample_xlsx_bytes, XLSX_TYPE),
            ],
        )
        assert response.status_code == 200
        body = response.json()
        assert body["counts"]["posts"] == 4
        assert [f["filename"] for f in body["failures"]] == ["broken.xlsx"]

    def test_only_invalid_files_returns_400(self, client):
        response = _upload(client, [("notes.txt", b"hello", "text/plain")])
        assert response.status_code == 400
        body = response.json()
        assert body["counts"]["posts"] == 0
        assert "Unsupported file type" in body["failures"][0]["reason"]
        assert client.get("/api/datasets").json() == []

    def test_oversized_file_rejected(self, client, monkeypatch):
        monkeypatch.setattr(settings, "max_upload_size_mb", 1)
        big = b"Post title,Impressions\n" + b"x" * (1024 * 1024 + 10)
        response = _upload(client, [("big.csv", big, "text/csv")])
        assert response.status_code == 400
        assert "exceeds maximum size" in response.json()["failures"][0]["reason"]

    def test_workbook_without_known_sheets_returns_400(self, client):
        response = _upload(client, [("empty.csv", b"Notes\nnothing here\n", "text/csv")])
        assert response.status_code == 400
        assert response.json()["failures"] == []

    def test_missing_files_field(self, client):
        response = client.post("/api/uploads", data={"dataset_name": "x"})
        assert response.status_code == 422


# ---------------------------------------------------------------------------
# Dataset queries
# ---------------------------------------------------------------------------


class TestDatasetRoutes:
    def _create(self, client, sample_xlsx_bytes, name="November"):
        response = _upload(client, [("export.xlsx", sample_xlsx_bytes, XLSX_TYPE)], name)
        return response.json()["dataset_id"]

    def test_list_datasets(self, client, sample_xlsx_bytes):
        first = self._create(client, sample_xlsx_bytes, "first")
        second = self._create(client, sample_xlsx_bytes, "second")

        datasets = client.get("/api/datasets").json()
        assert [d["id"] for d in datasets] == [second, first]
        assert datasets[0]["posts"] == 4
        assert datasets[0]["daily"] == 3

    def test_posts_include_bucket(self, client, sample_xlsx_bytes):
        dataset_id = self._create(client, sample_xlsx_bytes)
        posts = client.get(f"/api/datasets/{dataset_id}/posts").json()

        assert len(posts) == 4
        assert [p["bucket"] for p in posts] == ["Jobs", "Funding", "Video", "Newsletter"]
        assert posts[0]["created_at"] == "2025-10-24T16:38:34.207Z"
        assert "dataset_id" not in posts[0]

    def test_daily(self, client, sample_xlsx_bytes):
        dataset_id = self._create(client, sample_xlsx_bytes)
        daily = client.get(f"/api/datasets/{dataset_id}/daily").json()
        assert [d["impressions"] for d in daily] == [400, 250, 180]

    def test_followers(self, client, sample_xlsx_bytes):
        dataset_id = self._create(client, sample_xlsx_bytes)
        followers = client.get(f"/api/datasets/{dataset_id}/followers").json()
        assert len(followers["daily"]) == 2
        assert {d["category_type"] for d in followers["demographics"]} == {"location", "seniority"}

    def test_unknown_dataset_returns_404(self, client):
        for path in ("posts", "daily", "followers"):
            response = client.get(f"/api/datasets/999/{path}")
            assert response.status_code == 404

    def test_post_history(self, client, sample_xlsx_bytes):
        self._create(client, sample_xlsx_bytes, "week 1")
        self._create(client, sample_xlsx_bytes, "week 2")

        history = client.get("/api/posts/7387527938654691329/history").json()
        assert len(history) == 2
        assert history[0]["impressions"] == 1200
        assert history[0]["activity_id"] == "7387527938654691329"

    def test_clear_datasets(self, client, sample_xlsx_bytes):
        self._create(client, sample_xlsx_bytes)
        response = client.delete("/api/datasets")
        assert response.json() == {"deleted": 1}
        assert client.get("/api/datasets").json() == []
