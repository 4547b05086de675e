"""
City lookup data: coordinates, ministry ids and Latin display names.
Build one CityRepository at start-up and pass it to whoever needs it.
"""
import json
import logging
from collections import namedtuple
from pathlib import Path
from typing import Dict, List, Optional, Union

DEFAULT_CITIES_PATH = Path(__file__).resolve().parent.parent / "data" / "cities.json"

# Longitude degrees are shorter than latitude degrees around 33°N
LONGITUDE_SCALE = 0.83

City = namedtuple("City", ["name", "arabic", "lat", "lon", "ministry_id"], defaults=(None,))

NearestCity = namedtuple("NearestCity", ["city", "distance_sq"])

# Arabic names used by the ministry site -> Latin display names
LATIN_CITY_NAMES: Dict[str, str] = {
    'آزرو': 'Azrou',
    'آسفي': 'Safi',
    'أرفود': 'Erfoud',
    'أزمور': 'Azemmour',
    'أزيلال': 'Azilal',
    'أصيلة': 'Asilah',
    'أكادير': 'Agadir',
    'أكدز': 'Agdz',
    'أولاد تايمة': 'Oulad Teïma',
    'إيمنتانوت': 'Imintanoute',
    'ابن أحمد': 'Bin Ahmed',
    'البروج': 'El Borouj',
    'الجديدة': 'El Jadida',
    'الحاجب': 'El Hajeb',
    'الحسيمة': 'Al Hoceima',
    'الخميسات': 'Khemisset',
    'الداخلة': 'Dakhla',
    'الدار البيضاء': 'Casablanca',
    'الرباط': 'Rabat',
    'الرشيدية': 'Errachidia',
    'الريصاني': 'Rissani',
    'السعيدية': 'Saïdia',
    'السمارة': 'Es-Semara',
    'الصويرة': 'Essaouira',
    'العرائش': 'Larache',
    'العيون': 'Laâyoune',
    'الفقيه بنصالح': 'Fquih Ben Salah',
    'الفنيدق': 'Fnideq',
    'القصر الكبير': 'Ksar El Kebir',
    'القنيطرة': 'Kenitra',
    'المحمدية': 'Mohammedia',
    'المضيق': "M'diq",
    'الناظور': 'Nador',
    'اليوسفية': 'Youssoufia',
    'برشيد': 'Berrechid',
    'بركان': 'Berkane',
    'بن سليمان': 'Benslimane',
    'بنجرير': 'Benguerir',
    'بني ملال': 'Beni Mellal',
    'تازة': 'Taza',
    'تطوان': 'Tetouan',
    'تارودانت': 'Taroudant',
    'تزنيت': 'Tiznit',
    'خريبكة': 'Khouribga',
    'سطات': 'Settat',
    'سلا': 'Salé',
    'طنجة': 'Tangier',
    'فاس': 'Fes',
    'كلميم': 'Guelmim',
    'مراكش': 'Marrakech',
    'مكناس': 'Meknes',
    'وجدة': 'Oujda',
    'ورزازات': 'Ouarzazate',
}


def latin_city_name(name: str) -> str:
    """Latin display name for an Arabic city name; other names pass through."""
    if not name:
        return name
    return LATIN_CITY_NAMES.get(name.strip(), name)


class CityRepository:
    def __init__(self, cities: List[City]):
        self.cities = list(cities)
        self.logger = logging.getLogger(self.__class__.__name__)

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None) -> "CityRepository":
        path = Path(path).expanduser() if path else DEFAULT_CITIES_PATH
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        cities = [
            City(
                name=entry["name"],
                arabic=entry.get("arabic", ""),
                lat=float(entry["lat"]),
                lon=float(entry["lon"]),
                ministry_id=entry.get("ministry_id"),
            )
            for entry in data.get("cities", [])
        ]
        logging.getLogger(cls.__name__).info(f"Loaded {len(cities)} cities from {path}")
        return cls(cities)

    def __len__(self) -> int:
        return len(self.cities)

    def find_closest(self, lat: float, lon: float) -> Optional[NearestCity]:
        """Nearest city by squared distance with longitude scaled for Morocco's latitude."""
        best = None
        best_distance = float("inf")
        for city in self.cities:
            d_lat = city.lat - lat
            d_lon = (city.lon - lon) * LONGITUDE_SCALE
            distance = d_lat * d_lat + d_lon * d_lon
            if distance < best_distance:
                best_distance = distance
                best = city
        if best is None:
            return None
        return NearestCity(best, best_distance)

    def by_name(self, name: str) -> Optional[City]:
        wanted = (name or "").strip().lower()
        for city in self.cities:
            if city.name.lower() == wanted or city.arabic == name:
                return city
        return None

    def by_ministry_id(self, ministry_id: str) -> Optional[City]:
        for city in self.cities:
            if city.ministry_id is not None and str(city.ministry_id) == str(ministry_id):
                return city
        return None

    def latin_name(self, name: str) -> str:
        city = self.by_name(name)
        if city is not None:
            return city.name
        return latin_city_name(name)
