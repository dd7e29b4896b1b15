import json
from datetime import date
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests
from fastapi.testclient import TestClient

from river_monitor.api.dependencies import get_catalog, get_weather_client
from river_monitor.main import app
from river_monitor.models.domain import ImageryMatch
from river_monitor.services.earth_engine_session import SessionState
from river_monitor.services.weather_history import WeatherHistoryClient

from conftest import VARANASI, FakeCatalog

COORDINATES = json.dumps(VARANASI)


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def use_catalog(catalog):
    app.dependency_overrides[get_catalog] = lambda: catalog
    return catalog


def use_weather(http):
    app.dependency_overrides[get_weather_client] = lambda: WeatherHistoryClient(session=http)


class TestHealth:
    def test_degraded_until_earth_engine_ready(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "degraded"
        assert body["earth_engine"] == "not_initialized"

    def test_earth_engine_endpoints_unavailable_before_init(self, client):
        response = client.get("/api/river-imagery", params={"coordinates": COORDINATES})

        assert response.status_code == 503
        assert "not initialized" in response.json()["error"]

    @pytest.mark.parametrize(
        "path, params",
        [
            ("/api/fetch-climate-data", {"lat": "25.3"}),
            ("/api/collect-river-data", {"cadence": "bogus"}),
            ("/api/river-imagery", {"coordinates": "not json"}),
            ("/api/water-body-imagery", {"coordinates": COORDINATES, "startDate": "2023-13-01"}),
        ],
    )
    def test_bad_input_rejected_before_init(self, client, path, params):
        response = client.get(path, params=params)

        assert response.status_code == 400

    @pytest.mark.parametrize(
        "path, params",
        [
            ("/api/collect-river-data", {"startDate": "2020-01-01", "endDate": "2021-01-01"}),
            ("/api/fetch-climate-data", {"lat": "25.3", "lon": "83.0", "date": "2023-06-15"}),
            ("/api/water-body-imagery", {"coordinates": COORDINATES}),
        ],
    )
    def test_valid_input_unavailable_before_init(self, client, path, params, fast_settings):
        response = client.get(path, params=params)

        assert response.status_code == 503
        assert "not initialized" in response.json()["error"]
        # no batch was started, so no CSV file was written
        assert not Path(fast_settings.output_dir).exists()


class TestRiverImagery:
    def test_returns_thumbnails(self, client):
        use_catalog(FakeCatalog())

        response = client.get(
            "/api/river-imagery",
            params={"coordinates": COORDINATES, "startDate": "2023-01-01", "endDate": "2023-03-01"},
        )

        assert response.status_code == 200
        assert response.json() == {
            "mndwiImageUrl": "https://thumbs.test/mosaic/MNDWI.png",
            "naturalImageUrl": "https://thumbs.test/mosaic/B4.png",
            "scale": 10,
        }

    @pytest.mark.parametrize(
        "coordinates",
        ["not json", "[[83.0, 25.2], [83.1, 25.3]]", "[[83.0, 95.0], [83.1, 25.3], [83.2, 25.2]]"],
    )
    def test_invalid_coordinates(self, client, coordinates):
        use_catalog(FakeCatalog())

        response = client.get("/api/river-imagery", params={"coordinates": coordinates})

        assert response.status_code == 400
        assert "error" in response.json()

    def test_start_after_end(self, client):
        use_catalog(FakeCatalog())

        response = client.get(
            "/api/river-imagery",
            params={"coordinates": COORDINATES, "startDate": "2023-06-01", "endDate": "2023-01-01"},
        )

        assert response.status_code == 400

    def test_no_images(self, client):
        use_catalog(FakeCatalog(mosaic_match=ImageryMatch.not_found()))

        response = client.get("/api/river-imagery", params={"coordinates": COORDINATES})

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "Failed to fetch imagery"
        assert "No images found" in body["details"]


class TestWaterBodyImagery:
    def test_falls_back_to_landsat(self, client):
        landsat = ImageryMatch(
            found=True,
            image="ls-1",
            image_id="LANDSAT/LC09/C02/T1_L2/LC09_142042_20230502",
            acquisition_date=date(2023, 5, 2),
            cloud_fraction=4.0,
        )
        catalog = use_catalog(FakeCatalog(listings={"Landsat 8/9": [landsat]}))

        response = client.get("/api/water-body-imagery", params={"coordinates": COORDINATES})

        assert response.status_code == 200
        body = response.json()
        assert body["source"] == "Landsat 8/9"
        assert body["totalDatasets"] == 1
        assert body["startDate"] == "2023-01-01"
        assert body["datasets"][0] == {
            "imageId": "LANDSAT/LC09/C02/T1_L2/LC09_142042_20230502",
            "date": "2023-05-02",
            "cloudCover": 4.0,
            "naturalImageUrl": "https://thumbs.test/ls-1/SR_B4.png",
            "mndwiImageUrl": "https://thumbs.test/ls-1/MNDWI.png",
        }
        assert [call[0] for call in catalog.list_calls] == ["Sentinel-2", "Landsat 8/9"]

    def test_not_found_in_any_source(self, client):
        catalog = use_catalog(FakeCatalog())

        response = client.get(
            "/api/water-body-imagery",
            params={"coordinates": COORDINATES, "startDate": "2023-03-01", "endDate": "2023-04-01"},
        )

        assert response.status_code == 404
        assert "error" in response.json()
        assert len(catalog.list_calls) == 3
        extended = catalog.list_calls[2][1]
        assert (extended.start, extended.end) == (date(2022, 4, 1), date(2023, 4, 1))

    def test_missing_coordinates(self, client):
        use_catalog(FakeCatalog())

        response = client.get("/api/water-body-imagery")

        assert response.status_code == 422


class TestCollectRiverData:
    def test_batch_summary(self, client, fast_settings):
        app.state.session.state = SessionState.READY
        use_catalog(FakeCatalog(outcomes={date(2020, 7, 1): ImageryMatch.not_found()}))

        response = client.get(
            "/api/collect-river-data", params={"startDate": "2020-01-01", "endDate": "2021-04-01"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["cancelled"] is False
        assert body["csvFilePath"].startswith(fast_settings.output_dir)
        assert len(body["results"]) == 5
        assert [r["status"] for r in body["results"]] == [
            "completed",
            "completed",
            "skipped",
            "completed",
            "completed",
        ]
        assert body["results"][2]["message"] == "No images found for this interval"

    def test_invalid_cadence(self, client):
        use_catalog(FakeCatalog())

        response = client.get("/api/collect-river-data", params={"cadence": "weekly"})

        assert response.status_code == 400


class TestFetchClimateData:
    def test_missing_parameters(self, client):
        use_catalog(FakeCatalog())

        response = client.get("/api/fetch-climate-data", params={"lat": "25.3"})

        assert response.status_code == 400
        assert response.json()["error"] == "Missing required parameters: lon, date"

    def test_climate_record(self, client):
        catalog = use_catalog(FakeCatalog())

        response = client.get(
            "/api/fetch-climate-data", params={"lat": "25.3", "lon": "83.0", "date": "2023-06-15"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["climateData"]["mean_temperature"] == pytest.approx(25.0)
        assert body["climateData"]["pressure"] == pytest.approx(1005.0)
        assert catalog.climate_windows == [(date(2023, 6, 14), date(2023, 6, 16))]

    def test_no_climate_data(self, client):
        use_catalog(FakeCatalog(climate=None))

        response = client.get(
            "/api/fetch-climate-data", params={"lat": "25.3", "lon": "83.0", "date": "2023-06-15"}
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "climateData": None}

    def test_bad_date(self, client):
        use_catalog(FakeCatalog())

        response = client.get(
            "/api/fetch-climate-data", params={"lat": "25.3", "lon": "83.0", "date": "15/06/2023"}
        )

        assert response.status_code == 400


class TestWaterHistory:
    def test_missing_parameters(self, client):
        use_weather(MagicMock())

        response = client.get("/water-history", params={"latitude": "25.3"})

        assert response.status_code == 400
        assert "longitude" in response.json()["error"]

    def test_history(self, client):
        http = MagicMock()
        http.get.return_value.status_code = 200
        http.get.return_value.json.return_value = {
            "daily": {"time": ["2023-01-01", "2023-01-02"], "temperature_2m_mean": [14.0, 16.0]}
        }
        use_weather(http)

        response = client.get(
            "/water-history",
            params={
                "latitude": "25.3",
                "longitude": "83.0",
                "start_date": "2023-01-01",
                "end_date": "2023-01-02",
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert body["days"] == 2
        assert body["averages"]["temperature_2m_mean"] == 15.0

    def test_upstream_failure(self, client):
        http = MagicMock()
        http.get.side_effect = requests.ConnectionError("connection refused")
        use_weather(http)

        response = client.get(
            "/water-history",
            params={
                "latitude": "25.3",
                "longitude": "83.0",
                "start_date": "2023-01-01",
                "end_date": "2023-01-02",
            },
        )

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to fetch water history"
