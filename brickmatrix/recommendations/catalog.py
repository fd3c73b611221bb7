"""
Reference tables for the simulated listing providers.

Every keyed table is a ``FallbackTable`` so an unrecognised city, segment or
configuration resolves to a documented default instead of an empty result.
"""
from __future__ import annotations

from .lookups import FallbackTable

DEFAULT_CITY = "Mumbai"
DEFAULT_LOCALITY = "Central Area"

TIER1_CITIES: tuple[str, ...] = (
    "Mumbai",
    "Delhi",
    "Bangalore",
    "Hyderabad",
    "Pune",
    "Chennai",
    "Kolkata",
    "Ahmedabad",
)

# Alternate spellings seen in user input, mapped to the canonical city name.
CITY_ALIASES = FallbackTable(
    {
        "Bengaluru": "Bangalore",
        "Delhi NCR": "Delhi",
        "New Delhi": "Delhi",
        "Gurgaon": "Delhi",
        "Gurugram": "Delhi",
        "Noida": "Delhi",
        "Bombay": "Mumbai",
        "Madras": "Chennai",
        "Calcutta": "Kolkata",
    },
    default=None,
)

CITY_LOCALITIES = FallbackTable(
    {
        "Mumbai": ["Bandra West", "Powai", "Lower Parel", "Worli", "Andheri West", "Malad West", "Thane West"],
        "Delhi": ["Gurgaon", "Dwarka", "Rohini", "Saket", "Vasant Kunj", "Greater Kailash", "Noida"],
        "Bangalore": ["Whitefield", "Electronic City", "Koramangala", "HSR Layout", "Indiranagar", "Hebbal"],
        "Hyderabad": ["HITEC City", "Gachibowli", "Kondapur", "Madhapur", "Banjara Hills", "Jubilee Hills"],
        "Pune": ["Baner", "Wakad", "Hinjewadi", "Kharadi", "Viman Nagar", "Aundh", "Magarpatta"],
        "Chennai": ["OMR", "Anna Nagar", "T.Nagar", "Velachery", "Adyar", "Porur", "Thoraipakkam"],
        "Kolkata": ["Salt Lake", "New Town", "Ballygunge", "Park Street", "Rajarhat", "Behala"],
        "Ahmedabad": ["Satellite", "Vastrapur", "Bodakdev", "Prahlad Nagar", "SG Highway", "Maninagar"],
    },
    default=[DEFAULT_LOCALITY],
)

SEGMENTS: tuple[str, ...] = ("Affordable", "Mid-Range", "Premium", "Ultra-Premium")

_DEFAULT_SEGMENT_PRICES = {
    "Affordable": 4_000_000,
    "Mid-Range": 10_000_000,
    "Premium": 20_000_000,
    "Ultra-Premium": 50_000_000,
}

# Base ticket size per city and segment, in rupees.
SEGMENT_BASE_PRICES = FallbackTable(
    {
        "Mumbai": {"Affordable": 8_000_000, "Mid-Range": 18_000_000, "Premium": 35_000_000, "Ultra-Premium": 80_000_000},
        "Delhi": {"Affordable": 6_000_000, "Mid-Range": 15_000_000, "Premium": 30_000_000, "Ultra-Premium": 70_000_000},
        "Bangalore": dict(_DEFAULT_SEGMENT_PRICES),
        "Hyderabad": {"Affordable": 4_500_000, "Mid-Range": 11_000_000, "Premium": 22_000_000, "Ultra-Premium": 50_000_000},
        "Pune": {"Affordable": 4_000_000, "Mid-Range": 9_000_000, "Premium": 18_000_000, "Ultra-Premium": 40_000_000},
    },
    default=dict(_DEFAULT_SEGMENT_PRICES),
)

_DEFAULT_SQFT_RATES = {"Affordable": 6_000, "Mid-Range": 10_000, "Premium": 16_000, "Ultra-Premium": 25_000}

PRICE_PER_SQFT = FallbackTable(
    {
        "Mumbai": {"Affordable": 12_000, "Mid-Range": 18_000, "Premium": 25_000, "Ultra-Premium": 40_000},
        "Delhi": {"Affordable": 8_000, "Mid-Range": 15_000, "Premium": 22_000, "Ultra-Premium": 35_000},
        "Bangalore": dict(_DEFAULT_SQFT_RATES),
    },
    default=dict(_DEFAULT_SQFT_RATES),
)

CONFIGURATIONS: tuple[str, ...] = ("1BHK", "2BHK", "3BHK", "4BHK", "5BHK")
DEFAULT_CONFIGURATIONS: tuple[str, ...] = ("2BHK", "3BHK", "4BHK")

# Carpet area range in square feet.
CONFIGURATION_AREA = FallbackTable(
    {
        "1BHK": (450, 650),
        "2BHK": (650, 1_100),
        "3BHK": (1_100, 1_600),
        "4BHK": (1_600, 2_400),
        "5BHK": (2_400, 3_500),
    },
    default=(600, 2_100),
)

BUILDERS_BY_TYPE = FallbackTable(
    {
        "National": ["DLF Limited", "Godrej Properties", "Prestige Group", "Brigade Group", "Sobha Limited", "Oberoi Realty", "Lodha Group"],
        "Regional": ["Kolte Patil", "Puravankara", "Shriram Properties", "Mahindra Lifespace", "Tata Housing", "Hiranandani Group"],
        "Local": ["Rohan Builders", "Goel Ganga", "Kalpataru Group", "Rustomjee", "Runwal Group", "Piramal Realty"],
        "Boutique": ["Ashwin Architects", "Studio Lotus", "Morphogenesis", "CP Kukreja", "Nitesh Estates"],
    },
    default=["Independent Developer"],
)

PREMIUM_BUILDERS: tuple[str, ...] = ("DLF", "Godrej", "Prestige", "Brigade", "Sobha", "Oberoi", "Lodha")

STATUSES: tuple[str, ...] = ("ready", "under_construction", "new_launch", "resale")

STATUS_ALIASES = FallbackTable(
    {
        "ready": "ready",
        "ready to move": "ready",
        "under construction": "under_construction",
        "under_construction": "under_construction",
        "new launch": "new_launch",
        "new_launch": "new_launch",
        "pre-launch": "new_launch",
        "resale": "resale",
    },
    default=None,
)

BASE_AMENITIES: tuple[str, ...] = ("Security", "Parking", "Power Backup", "Lift")

SEGMENT_AMENITIES = FallbackTable(
    {
        "Affordable": ["Garden", "Children Play Area", "Water Supply"],
        "Mid-Range": ["Gym", "Swimming Pool", "Clubhouse", "Jogging Track"],
        "Premium": ["Spa", "Tennis Court", "Concierge", "Private Garden", "Home Theater"],
        "Ultra-Premium": ["Helipad", "Wine Cellar", "Private Elevator", "Butler Service", "Infinity Pool"],
    },
    default=[],
)

TITLE_ADJECTIVES = FallbackTable(
    {
        "Affordable": ["Comfortable", "Cozy", "Smart", "Value"],
        "Mid-Range": ["Modern", "Elegant", "Spacious", "Contemporary"],
        "Premium": ["Luxury", "Premium", "Elite", "Exclusive"],
        "Ultra-Premium": ["Ultra-Luxury", "Signature", "Platinum", "Royal"],
    },
    default=["Residential"],
)

PROJECT_SUFFIXES: tuple[str, ...] = ("Eternis", "Grandeur", "Platinum", "Elite", "Signature", "Pinnacle")

IMAGE_IDS: tuple[str, ...] = ("560518", "560519", "560520", "560521", "560522")
IMAGE_URL = "https://images.unsplash.com/photo-15605181{image_id}?w=800&h=600&fit=crop"


def canonical_city(city: object) -> str | None:
    """Map user input to a known city name, keeping unknown cities as typed."""
    if not isinstance(city, str) or not city.strip():
        return None
    alias = CITY_ALIASES[city]
    if alias:
        return alias
    known = CITY_LOCALITIES.label(city)
    return known or city.strip()


def is_tier1(city: object) -> bool:
    canonical = canonical_city(city)
    return canonical in TIER1_CITIES
