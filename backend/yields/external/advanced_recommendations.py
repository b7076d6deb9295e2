import logging

import httpx
import numpy as np

from ..conf import AdvancedRecommendationConfig
from ..recommendation_templates import CRITICAL, HIGH, LOW, MEDIUM, RecommendationItem

logger = logging.getLogger(__name__)


class AdvancedRecommendationError(Exception):
    """Raised when the advanced recommendation API cannot be used"""


def _mean(values):
    present = [v for v in values if v is not None]
    return float(np.mean(present)) if present else None


def weather_summary(recent_weather):
    return {
        'average_temperature': _mean([w.average_temperature for w in recent_weather]),
        'total_rainfall': float(sum(w.rainfall_mm for w in recent_weather if w.rainfall_mm is not None)),
        'average_humidity': _mean([w.humidity_percentage for w in recent_weather]),
        'max_wind_speed': max((w.wind_speed_kmh for w in recent_weather if w.wind_speed_kmh is not None), default=0.0),
    }


class RemoteRecommendationProvider:
    """Client for an external advanced recommendation API"""

    def __init__(self, base_url, api_key="", timeout=30.0):
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key
        self.timeout = timeout

    def build_request(self, session, recent_weather, soil_sample, days_since_planting):
        farm = session.farm
        variety = session.variety
        soil = None
        if soil_sample is not None:
            soil = {
                'soil_type': soil_sample.soil_type,
                'ph_level': soil_sample.ph_level,
                'organic_matter': soil_sample.organic_matter_percentage,
                'nitrogen': soil_sample.nitrogen_content,
                'phosphorus': soil_sample.phosphorus_content,
                'potassium': soil_sample.potassium_content,
                'moisture': soil_sample.moisture_content,
            }
        return {
            'farm_id': farm.id,
            'planting_session_id': session.id,
            'crop_type': 'MAIZE',
            'variety': variety.name,
            'planting_date': session.planting_date.isoformat(),
            'days_since_planting': days_since_planting,
            'farm_location': {
                'latitude': float(farm.latitude) if farm.latitude is not None else None,
                'longitude': float(farm.longitude) if farm.longitude is not None else None,
                'elevation': farm.elevation,
            },
            'soil_data': soil,
            'weather_data': [
                {
                    'date': w.date.isoformat(),
                    'min_temp': w.min_temperature,
                    'max_temp': w.max_temperature,
                    'avg_temp': w.average_temperature,
                    'rainfall': w.rainfall_mm,
                    'humidity': w.humidity_percentage,
                    'wind_speed': w.wind_speed_kmh,
                }
                for w in recent_weather
            ],
            'weather_summary': weather_summary(recent_weather),
            'variety_info': {
                'maturity_days': variety.maturity_days,
                'drought_resistant': variety.drought_resistant,
                'optimal_temp_min': variety.optimal_temperature_min,
                'optimal_temp_max': variety.optimal_temperature_max,
            },
        }

    async def generate(self, session, recent_weather, soil_sample, days_since_planting):
        payload = self.build_request(session, recent_weather, soil_sample, days_since_planting)
        logger.info(f"Requesting advanced recommendations for session {session.id}")

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                f"{self.base_url}/recommendations/generate",
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
        if response.status_code != 200:
            raise AdvancedRecommendationError(
                f"Recommendation API returned HTTP {response.status_code}: {response.text[:200]}"
            )
        return self.parse_response(response.json())

    @staticmethod
    def parse_response(data):
        items = []
        for entry in data.get('recommendations') or []:
            items.append(RecommendationItem(
                category=entry['category'],
                title=entry['title'],
                description=entry.get('description', ''),
                priority=entry.get('priority', MEDIUM),
                confidence=entry.get('confidence'),
            ))
        return items


class LocalRecommendationProvider:
    """Rule based agronomic advice over recent weather, soil, growth stage and variety"""

    async def generate(self, session, recent_weather, soil_sample, days_since_planting):
        return self.recommend(session, recent_weather, soil_sample, days_since_planting)

    def recommend(self, session, recent_weather, soil_sample, days):
        items = []
        if recent_weather:
            items.extend(self.weather_rules(recent_weather, days))
        if soil_sample is not None:
            items.extend(self.soil_rules(soil_sample, days))
        items.extend(self.growth_stage_rules(days))
        items.extend(self.variety_rules(session.variety, recent_weather, days))
        return items

    def weather_rules(self, recent_weather, days):
        summary = weather_summary(recent_weather)
        temperature = summary['average_temperature']
        rainfall = summary['total_rainfall']
        humidity = summary['average_humidity']
        wind = summary['max_wind_speed']
        items = []

        if temperature is not None and temperature > 35.0 and 30 <= days <= 80:
            items.append(RecommendationItem(
                "HEAT_STRESS", "Critical Heat Stress Management",
                f"Extreme heat ({temperature:.1f}°C) during reproductive phase. Apply mulch, increase irrigation "
                "frequency to 2-3 times daily, and consider shade netting for critical areas.",
                CRITICAL, 95.0,
            ))
        elif temperature is not None and temperature < 15.0 and days < 30:
            items.append(RecommendationItem(
                "COLD_PROTECTION", "Cold Weather Protection",
                f"Low temperatures ({temperature:.1f}°C) may slow germination and early growth. "
                "Consider row covers or plastic tunnels for protection.",
                HIGH, 88.0,
            ))

        if rainfall < 10.0 and 40 <= days <= 100:
            items.append(RecommendationItem(
                "DROUGHT_MANAGEMENT", "Drought Stress Mitigation",
                f"Severe rainfall deficit ({rainfall:.1f}mm in 7 days). Implement deficit irrigation strategy "
                "and apply organic mulch to conserve soil moisture.",
                CRITICAL, 92.0,
            ))
        elif rainfall > 100.0:
            items.append(RecommendationItem(
                "WATERLOG_PREVENTION", "Waterlogging Prevention",
                f"Excessive rainfall ({rainfall:.1f}mm). Ensure drainage channels are clear and consider "
                "fungicide application to prevent root rot.",
                HIGH, 87.0,
            ))

        if humidity is not None and humidity > 80.0 and temperature is not None and temperature > 25.0:
            items.append(RecommendationItem(
                "DISEASE_PREVENTION", "High Disease Risk Alert",
                f"High humidity ({humidity:.1f}%) and warm temperatures create ideal conditions for fungal "
                "diseases. Apply preventive fungicide and improve air circulation.",
                HIGH, 85.0,
            ))

        if wind > 50.0:
            items.append(RecommendationItem(
                "WIND_PROTECTION", "Wind Damage Prevention",
                f"Strong winds ({wind:.1f} km/h) may cause lodging. Consider staking tall plants and check "
                "for mechanical damage.",
                MEDIUM, 78.0,
            ))
        return items

    def soil_rules(self, soil, days):
        items = []
        nitrogen = soil.nitrogen_content
        if nitrogen is not None:
            if nitrogen < 1.0 and 20 <= days <= 60:
                items.append(RecommendationItem(
                    "NUTRIENT_MANAGEMENT", "Critical Nitrogen Deficiency",
                    f"Severe nitrogen deficiency ({nitrogen}%). Apply immediate foliar nitrogen (urea 2%) and "
                    "side-dress with 150kg/ha of CAN for rapid uptake.",
                    CRITICAL, 93.0,
                ))
            elif 1.0 <= nitrogen <= 1.5 and 30 <= days <= 70:
                items.append(RecommendationItem(
                    "NUTRIENT_MANAGEMENT", "Optimize Nitrogen Supply",
                    f"Moderate nitrogen levels ({nitrogen}%). Apply split application of nitrogen fertilizer - "
                    "100kg/ha now and 50kg/ha at tasseling stage.",
                    HIGH, 87.0,
                ))

        ph = soil.ph_level
        if ph is not None:
            if ph < 5.5:
                items.append(RecommendationItem(
                    "SOIL_CHEMISTRY", "Soil Acidification Treatment",
                    f"Severe soil acidity (pH {ph}) is limiting nutrient availability. Apply agricultural lime "
                    "at 3-4 tonnes/ha and consider foliar micronutrient application.",
                    HIGH, 91.0,
                ))
            elif ph > 8.0:
                items.append(RecommendationItem(
                    "SOIL_CHEMISTRY", "Alkaline Soil Management",
                    f"High soil pH ({ph}) may cause micronutrient deficiencies. Apply sulfur at 200kg/ha and "
                    "use acidifying fertilizers like ammonium sulfate.",
                    MEDIUM, 84.0,
                ))

        moisture = soil.moisture_content
        if moisture is not None:
            if moisture < 20.0 and 40 <= days <= 80:
                items.append(RecommendationItem(
                    "IRRIGATION", "Critical Soil Moisture Deficit",
                    f"Low soil moisture ({moisture}%) during critical growth period. Increase irrigation to "
                    "25-30mm per week and apply mulch to reduce evaporation.",
                    CRITICAL, 89.0,
                ))
            elif moisture > 80.0:
                items.append(RecommendationItem(
                    "DRAINAGE", "Excess Soil Moisture Management",
                    f"High soil moisture ({moisture}%) may cause root problems. Improve drainage and reduce "
                    "irrigation frequency to prevent waterlogging.",
                    MEDIUM, 82.0,
                ))
        return items

    def growth_stage_rules(self, days):
        if 5 <= days <= 10:
            return [RecommendationItem(
                "EMERGENCE", "Emergence Stage Monitoring",
                "Critical emergence period. Monitor for uniform germination, check soil crusting, and ensure "
                "adequate soil moisture. Apply starter fertilizer if not done at planting.",
                HIGH, 90.0,
            )]
        if 25 <= days <= 35:
            return [RecommendationItem(
                "WEED_CONTROL", "Critical Weed Control Period",
                "Entering critical weed-free period. Apply post-emergence herbicide or conduct mechanical "
                "weeding. Weeds competing now will significantly impact yield.",
                CRITICAL, 95.0,
            )]
        if 45 <= days <= 55:
            return [RecommendationItem(
                "NUTRIENT_TIMING", "Pre-Tasseling Nutrition Boost",
                "Rapid growth phase before tasseling. Apply side-dress nitrogen and ensure adequate potassium "
                "levels. This is critical for ear development.",
                HIGH, 88.0,
            )]
        if 65 <= days <= 75:
            return [RecommendationItem(
                "REPRODUCTIVE_SUPPORT", "Pollination Period Support",
                "Tasseling and silking stage. Ensure consistent moisture (no stress), monitor for silk clipping "
                "by insects, and avoid any field operations that may damage pollen.",
                CRITICAL, 93.0,
            )]
        if 90 <= days <= 110:
            return [RecommendationItem(
                "GRAIN_FILLING", "Grain Filling Optimization",
                "Grain filling period. Maintain consistent moisture, monitor for late-season diseases, and avoid "
                "any plant stress that could reduce kernel weight.",
                HIGH, 87.0,
            )]
        return []

    def variety_rules(self, variety, recent_weather, days):
        items = []
        if variety.drought_resistant and recent_weather:
            rainfall = weather_summary(recent_weather)['total_rainfall']
            if rainfall < 15.0:
                items.append(RecommendationItem(
                    "VARIETY_ADVANTAGE", "Leverage Drought Tolerance",
                    f"Your drought-resistant variety {variety.name} can handle current dry conditions better "
                    "than conventional varieties. Maintain minimal irrigation and avoid overwatering.",
                    LOW, 82.0,
                ))
        if variety.maturity_days < 100 and days > 70:
            items.append(RecommendationItem(
                "HARVEST_TIMING", "Early Variety Harvest Preparation",
                f"Your early-maturing variety {variety.name} is approaching harvest. Begin monitoring grain "
                "moisture content and prepare harvesting equipment.",
                MEDIUM, 85.0,
            ))
        return items


def build_advanced_provider(config: AdvancedRecommendationConfig):
    """Return the configured provider, or None when escalation is disabled"""
    if not config.enabled:
        return None
    if config.mode == "remote":
        return RemoteRecommendationProvider(config.base_url, config.api_key, config.timeout_seconds)
    return LocalRecommendationProvider()
