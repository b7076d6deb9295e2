from datetime import date, timedelta
from types import SimpleNamespace

import pytest

from farms.models import MaizeVariety, PlantingSession, SoilSample
from yields.conf import ScoringConfig
from yields.scoring_service import (
    FactorScoringModel,
    PredictionResult,
    growth_stage_factor,
    nutrient_factor,
    ph_factor,
    rainfall_factor,
    soil_factor,
    temperature_factor,
    weather_factor,
)

AS_OF = date(2025, 2, 1)


def make_session(days_planted=100, drought_resistant=False, maturity_days=120):
    variety = MaizeVariety(name="ZM 523", maturity_days=maturity_days, drought_resistant=drought_resistant)
    return PlantingSession(id=1, variety=variety, planting_date=AS_OF - timedelta(days=days_planted))


def weather_day(rainfall=10.0, temperature=25.0):
    return SimpleNamespace(rainfall_mm=rainfall, average_temperature=temperature)


class TestFactorFunctions:
    @pytest.mark.parametrize("rainfall", [5.0, 7.5, 10.0, 12.345, 15.0])
    def test_rainfall_in_optimal_band_is_neutral(self, rainfall):
        assert rainfall_factor(rainfall) == 1.0

    def test_rainfall_just_outside_band_is_penalized(self):
        assert rainfall_factor(4.999) < 1.0
        assert rainfall_factor(15.001) < 1.0

    def test_rainfall_extremes(self):
        assert rainfall_factor(0.5) == 0.6
        assert rainfall_factor(40.0) == 0.8
        assert rainfall_factor(3.0) == pytest.approx(0.9)

    def test_temperature_response(self):
        assert temperature_factor(25.0) == 1.0
        assert temperature_factor(10.0) == 0.7
        assert temperature_factor(17.5) == pytest.approx(0.85)
        assert temperature_factor(32.0) == pytest.approx(0.88)
        assert temperature_factor(40.0) == 0.7

    def test_window_weather_factor(self):
        window = [weather_day(rainfall=8.0), weather_day(rainfall=12.0)]
        assert weather_factor(window) == 1.0
        assert weather_factor([]) == 1.0

    def test_missing_window_values_use_defaults(self):
        window = [SimpleNamespace(rainfall_mm=None, average_temperature=None)]
        assert weather_factor(window) == 1.0

    def test_ph_factor_has_floor(self):
        assert ph_factor(6.5) == 1.0
        assert ph_factor(6.4) == pytest.approx(0.99)
        assert ph_factor(2.0) == 0.7
        assert ph_factor(None) == 0.9

    def test_nutrient_factor_is_clamped(self):
        assert nutrient_factor(22.0, 18.0) == 1.3
        assert nutrient_factor(None, 18.0) == 1.0

    def test_soil_factor_without_sample_is_neutral(self):
        assert soil_factor(None) == 1.0

    def test_soil_factor_combines_terms(self):
        sample = SoilSample(ph_level=6.4, nitrogen_content=22.0, phosphorus_content=18.0)
        assert soil_factor(sample) == pytest.approx(0.99 * 1.3)

    @pytest.mark.parametrize("days,expected", [
        (-1, 0.0), (0, 0.3), (29, 0.3), (30, 0.6), (59, 0.6), (60, 0.8), (89, 0.8), (90, 1.0), (200, 1.0),
    ])
    def test_growth_stage_bands(self, days, expected):
        assert growth_stage_factor(days) == expected


class TestFactorScoringModel:
    def setup_method(self):
        self.model = FactorScoringModel(ScoringConfig(seed=1234))

    def test_identical_inputs_give_identical_output(self):
        session = make_session()
        soil = SoilSample(ph_level=6.0, organic_matter_percentage=2.0)
        window = [weather_day(), weather_day(rainfall=3.0)]

        first = self.model.score(session, soil, window, AS_OF)
        second = self.model.score(session, soil, window, AS_OF)

        assert first == second

    def test_base_yield_within_documented_range(self):
        result = self.model.score(make_session(), None, [], AS_OF)
        assert 4.5 <= result.predicted_yield <= 6.0

    @pytest.mark.parametrize("has_soil", [True, False])
    @pytest.mark.parametrize("has_weather", [True, False])
    @pytest.mark.parametrize("seed", [0, 1, 42, 1234, 99999])
    def test_confidence_is_bounded(self, has_soil, has_weather, seed):
        model = FactorScoringModel(ScoringConfig(seed=seed))
        soil = SoilSample(ph_level=6.5) if has_soil else None
        window = [weather_day()] if has_weather else []

        result = model.score(make_session(), soil, window, AS_OF)

        assert 70.0 <= result.confidence <= 95.0

    def test_confidence_grows_with_data_completeness(self):
        bare = self.model.score(make_session(), None, [], AS_OF)
        full = self.model.score(make_session(), SoilSample(ph_level=6.5), [weather_day()], AS_OF)
        assert bare.confidence < 75.0
        assert full.confidence >= 90.0
        assert full.confidence - bare.confidence == pytest.approx(20.0)

    def test_future_planting_predicts_zero(self):
        session = make_session(days_planted=-10)
        result = self.model.score(session, SoilSample(ph_level=6.5), [weather_day()], AS_OF)
        assert result.predicted_yield == 0.0
        assert result.growth_stage == "Not Planted"

    def test_yield_is_never_negative(self):
        soil = SoilSample(ph_level=1.0, organic_matter_percentage=0.0, nitrogen_content=0.0, phosphorus_content=0.0)
        window = [weather_day(rainfall=0.0, temperature=45.0)]
        result = self.model.score(make_session(days_planted=5), soil, window, AS_OF)
        assert result.predicted_yield >= 0.0

    def test_drought_resistance_raises_yield(self):
        regular = self.model.score(make_session(), None, [], AS_OF)
        resistant = self.model.score(make_session(drought_resistant=True), None, [], AS_OF)
        assert resistant.predicted_yield > regular.predicted_yield
        assert resistant.scores.variety == 1.1

    def test_features_used_follow_available_data(self):
        bare = self.model.score(make_session(), None, [], AS_OF)
        full = self.model.score(make_session(), SoilSample(ph_level=6.5), [weather_day()], AS_OF)

        assert bare.features_used == ("PlantingDate", "DaysSincePlanting", "MaizeVariety")
        assert full.features_used == ("PlantingDate", "DaysSincePlanting", "MaizeVariety", "SoilData", "WeatherData")

    def test_factor_breakdown(self):
        result = self.model.score(make_session(), SoilSample(ph_level=6.5), [weather_day(rainfall=2.0)], AS_OF)
        factors = {f.factor: f for f in result.factors}

        assert list(factors) == ["Soil Quality", "Weather Conditions", "Growth Stage", "Maize Variety"]
        assert factors["Weather Conditions"].impact == "NEGATIVE"
        assert factors["Growth Stage"].importance == 0.2
        assert factors["Maize Variety"].impact == "NEUTRAL"

    def test_result_round_trips_through_event_payload(self):
        result = self.model.score(make_session(), None, [weather_day()], AS_OF)
        restored = PredictionResult.from_dict(result.as_dict())

        assert restored.predicted_yield == result.predicted_yield
        assert restored.factors == result.factors
        assert restored.prediction_date == AS_OF

    def test_quality_label(self):
        result = self.model.score(make_session(), None, [], AS_OF)
        assert result.quality == "MEDIUM"
