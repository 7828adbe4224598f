"""
Restaurant Directory Import Pipeline Configuration
Config-first approach with typed configuration objects
"""
import os
import json
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Any, Optional, Mapping
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DEFAULT_CONFIG_PATH = os.path.join(BASE_DIR, "config.json")


class ConfigurationError(Exception):
    """Fatal configuration problem, aborts a batch before any work"""
    pass


@dataclass
class PlacesConfig:
    """Google Places API configuration"""
    base_url: str
    language: Optional[str]
    included_type: str
    default_radius_m: int
    detail_delay_ms: int
    request_timeout_s: float
    details_fields: List[str]


@dataclass
class AreaSeederConfig:
    """Area seeder configuration"""
    areas_file: str
    search_radius_m: int
    min_rating: float
    top_n: int
    excluded_types: List[str]
    max_reviews: int


@dataclass
class PhotoConfig:
    """Photo re-hosting configuration"""
    bucket: str
    primary_max_width: int
    refresh_max_width: int
    max_photos: int
    file_suffix: str
    download_timeout_s: float


@dataclass
class TemplateConfig:
    """Description and SEO text templates"""
    area_description: str
    area_meta_title: str
    area_meta_description: str
    venue_description: str
    venue_meta_title: str
    venue_meta_description: str


@dataclass
class OpeningHoursConfig:
    """Locale-aware day names and closed keywords"""
    day_names: Dict[str, str]
    closed_keywords: List[str]


@dataclass
class SeedArea:
    """Named area the seeder walks through"""
    name: str
    lat: float
    lng: float
    region: Optional[str] = None


@dataclass
class Config:
    """Main configuration object"""
    places: PlacesConfig
    area_seeder: AreaSeederConfig
    photos: PhotoConfig
    templates: TemplateConfig
    opening_hours: OpeningHoursConfig
    cuisine_map: Mapping[str, str]
    seed_areas: List[SeedArea]

    # Environment variables
    supabase_url: Optional[str] = field(init=False)
    supabase_key: Optional[str] = field(init=False)
    google_places_api_key: Optional[str] = field(init=False)

    def __post_init__(self):
        """Load environment variables after initialization"""
        self.supabase_url = os.getenv('SUPABASE_URL')
        self.supabase_key = os.getenv('SUPABASE_KEY')
        self.google_places_api_key = os.getenv('GOOGLE_PLACES_API_KEY')

    def require_google_api_key(self) -> str:
        if not self.google_places_api_key:
            raise ConfigurationError("Google Places API key not configured")
        return self.google_places_api_key

    def require_supabase(self) -> None:
        missing_env = [env for env in ('SUPABASE_URL', 'SUPABASE_KEY') if not getattr(self, env.lower())]
        if missing_env:
            raise ConfigurationError(f"Missing required environment variables: {missing_env}")


# Global config instance
_config_instance: Optional[Config] = None


def load_seed_areas(areas_path: str) -> List[SeedArea]:
    """Load the fixed seed area list from JSON"""
    if not os.path.isabs(areas_path):
        areas_path = os.path.join(BASE_DIR, areas_path)
    with open(areas_path, 'r', encoding='utf-8') as f:
        raw_areas = json.load(f)
    return [
        SeedArea(name=a['name'], lat=float(a['lat']), lng=float(a['lng']), region=a.get('region'))
        for a in raw_areas
    ]


def build_config(config_data: Dict[str, Any]) -> Config:
    """Build typed Config from parsed config.json data"""
    places_data = config_data['places']
    seeder_data = config_data['area_seeder']
    photo_data = config_data['photos']
    template_data = config_data['templates']
    hours_data = config_data['opening_hours']

    places_config = PlacesConfig(
        base_url=places_data['base_url'].rstrip('/'),
        language=places_data.get('language'),
        included_type=places_data['included_type'],
        default_radius_m=places_data['default_radius_m'],
        detail_delay_ms=places_data['detail_delay_ms'],
        request_timeout_s=places_data['request_timeout_s'],
        details_fields=places_data['details_fields']
    )

    seeder_config = AreaSeederConfig(
        areas_file=seeder_data['areas_file'],
        search_radius_m=seeder_data['search_radius_m'],
        min_rating=seeder_data['min_rating'],
        top_n=seeder_data['top_n'],
        excluded_types=seeder_data['excluded_types'],
        max_reviews=seeder_data['max_reviews']
    )

    photo_config = PhotoConfig(
        bucket=photo_data['bucket'],
        primary_max_width=photo_data['primary_max_width'],
        refresh_max_width=photo_data['refresh_max_width'],
        max_photos=photo_data['max_photos'],
        file_suffix=photo_data['file_suffix'],
        download_timeout_s=photo_data['download_timeout_s']
    )

    template_config = TemplateConfig(**template_data)

    hours_config = OpeningHoursConfig(
        day_names=dict(hours_data['day_names']),
        closed_keywords=list(hours_data['closed_keywords'])
    )

    return Config(
        places=places_config,
        area_seeder=seeder_config,
        photos=photo_config,
        templates=template_config,
        opening_hours=hours_config,
        cuisine_map=MappingProxyType(dict(config_data['cuisine_map'])),
        seed_areas=load_seed_areas(seeder_config.areas_file)
    )


def load_config(config_path: Optional[str] = None) -> Config:
    """
    Load configuration from JSON file with typed objects

    Args:
        config_path: Path to config.json file (defaults to DIRECTORY_CONFIG_PATH
            or the config.json next to this module)

    Returns:
        Typed Config object
    """
    global _config_instance

    if _config_instance is not None:
        return _config_instance

    config_path = config_path or os.getenv('DIRECTORY_CONFIG_PATH', DEFAULT_CONFIG_PATH)

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config_data = json.load(f)

        _config_instance = build_config(config_data)

        logger.info(f"Configuration loaded successfully from {config_path} "
                    f"({len(_config_instance.seed_areas)} seed areas)")
        return _config_instance

    except FileNotFoundError as e:
        raise ValueError(f"Configuration file not found: {e.filename}")
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in configuration file: {e}")
    except KeyError as e:
        raise ValueError(f"Missing required configuration key: {e}")


def get_config() -> Config:
    """Get the global configuration instance"""
    if _config_instance is None:
        return load_config()
    return _config_instance
