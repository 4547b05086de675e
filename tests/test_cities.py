import unittest

from prayer_sync.prayer.cities import City, CityRepository, latin_city_name


class TestCityRepository(unittest.TestCase):
    def setUp(self):
        self.cities = CityRepository.load()

    def test_bundled_data_loads(self):
        self.assertEqual(len(self.cities), 20)
        self.assertEqual(self.cities.by_ministry_id("58").name, "Casablanca")

    def test_find_closest(self):
        nearest = self.cities.find_closest(33.58, -7.60)
        self.assertEqual(nearest.city.name, "Casablanca")
        self.assertLess(nearest.distance_sq, 0.001)

        self.assertEqual(self.cities.find_closest(34.02, -6.84).city.name, "Rabat")

    def test_longitude_is_scaled(self):
        repo = CityRepository([
            City("North", "", 1.0, 0.0),
            City("East", "", 0.0, 1.1),
        ])
        # Unscaled the north city wins (1.0 < 1.21); scaled 1.1 * 0.83 is closer
        self.assertEqual(repo.find_closest(0.0, 0.0).city.name, "East")

    def test_empty_repository(self):
        self.assertIsNone(CityRepository([]).find_closest(33.0, -7.0))

    def test_lookup_by_name(self):
        self.assertEqual(self.cities.by_name("casablanca").name, "Casablanca")
        self.assertEqual(self.cities.by_name("الرباط").name, "Rabat")
        self.assertIsNone(self.cities.by_name("Atlantis"))

    def test_latin_names(self):
        self.assertEqual(self.cities.latin_name("الدار البيضاء"), "Casablanca")
        self.assertEqual(latin_city_name(" طنجة "), "Tangier")
        self.assertEqual(latin_city_name("Somewhere"), "Somewhere")
        self.assertEqual(latin_city_name(""), "")


if __name__ == "__main__":
    unittest.main()
