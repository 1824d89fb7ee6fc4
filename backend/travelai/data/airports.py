"""Embedded table of well-known airports.

Used for:
- location autocomplete when the search provider is unconfigured or failing
- mapping an airport code to its metropolitan city code and name for hotel search
"""

# (iata, airport name, city name, city code, country code)
AIRPORTS: list[tuple[str, str, str, str, str]] = [
    # Europe
    ("LHR", "Heathrow Airport", "London", "LON", "GB"),
    ("LGW", "Gatwick Airport", "London", "LON", "GB"),
    ("STN", "Stansted Airport", "London", "LON", "GB"),
    ("CDG", "Charles de Gaulle Airport", "Paris", "PAR", "FR"),
    ("ORY", "Orly Airport", "Paris", "PAR", "FR"),
    ("AMS", "Amsterdam Airport Schiphol", "Amsterdam", "AMS", "NL"),
    ("FRA", "Frankfurt Airport", "Frankfurt", "FRA", "DE"),
    ("MUC", "Munich Airport", "Munich", "MUC", "DE"),
    ("BER", "Berlin Brandenburg Airport", "Berlin", "BER", "DE"),
    ("MAD", "Adolfo Suarez Madrid-Barajas Airport", "Madrid", "MAD", "ES"),
    ("BCN", "Josep Tarradellas Barcelona-El Prat Airport", "Barcelona", "BCN", "ES"),
    ("FCO", "Leonardo da Vinci-Fiumicino Airport", "Rome", "ROM", "IT"),
    ("MXP", "Milan Malpensa Airport", "Milan", "MIL", "IT"),
    ("LIS", "Humberto Delgado Airport", "Lisbon", "LIS", "PT"),
    ("DUB", "Dublin Airport", "Dublin", "DUB", "IE"),
    ("ZRH", "Zurich Airport", "Zurich", "ZRH", "CH"),
    ("VIE", "Vienna International Airport", "Vienna", "VIE", "AT"),
    ("CPH", "Copenhagen Airport", "Copenhagen", "CPH", "DK"),
    ("ATH", "Athens International Airport", "Athens", "ATH", "GR"),
    ("IST", "Istanbul Airport", "Istanbul", "IST", "TR"),
    ("PRG", "Vaclav Havel Airport Prague", "Prague", "PRG", "CZ"),
    # North America
    ("JFK", "John F. Kennedy International Airport", "New York", "NYC", "US"),
    ("EWR", "Newark Liberty International Airport", "New York", "NYC", "US"),
    ("LGA", "LaGuardia Airport", "New York", "NYC", "US"),
    ("LAX", "Los Angeles International Airport", "Los Angeles", "LAX", "US"),
    ("SFO", "San Francisco International Airport", "San Francisco", "SFO", "US"),
    ("ORD", "O'Hare International Airport", "Chicago", "CHI", "US"),
    ("MIA", "Miami International Airport", "Miami", "MIA", "US"),
    ("BOS", "Logan International Airport", "Boston", "BOS", "US"),
    ("YYZ", "Toronto Pearson International Airport", "Toronto", "YTO", "CA"),
    ("YVR", "Vancouver International Airport", "Vancouver", "YVR", "CA"),
    ("MEX", "Mexico City International Airport", "Mexico City", "MEX", "MX"),
    # Middle East, Asia, Oceania
    ("DXB", "Dubai International Airport", "Dubai", "DXB", "AE"),
    ("DOH", "Hamad International Airport", "Doha", "DOH", "QA"),
    ("SIN", "Singapore Changi Airport", "Singapore", "SIN", "SG"),
    ("HND", "Haneda Airport", "Tokyo", "TYO", "JP"),
    ("NRT", "Narita International Airport", "Tokyo", "TYO", "JP"),
    ("HKG", "Hong Kong International Airport", "Hong Kong", "HKG", "HK"),
    ("BKK", "Suvarnabhumi Airport", "Bangkok", "BKK", "TH"),
    ("SYD", "Sydney Kingsford Smith Airport", "Sydney", "SYD", "AU"),
    # South America, Africa
    ("GRU", "Sao Paulo/Guarulhos International Airport", "Sao Paulo", "SAO", "BR"),
    ("EZE", "Ministro Pistarini International Airport", "Buenos Aires", "BUE", "AR"),
    ("JNB", "O. R. Tambo International Airport", "Johannesburg", "JNB", "ZA"),
    ("CAI", "Cairo International Airport", "Cairo", "CAI", "EG"),
]

_BY_CODE = {row[0]: row for row in AIRPORTS}
_BY_CITY_CODE = {row[3]: row for row in reversed(AIRPORTS)}


def search_airports(keyword: str) -> list[dict]:
    """Case-insensitive substring match on airport code, airport name or city."""
    needle = (keyword or "").strip().lower()
    if not needle:
        return []
    matches = []
    for iata, name, city, _city_code, country in AIRPORTS:
        if needle in iata.lower() or needle in name.lower() or needle in city.lower():
            matches.append({
                "code": iata,
                "name": name,
                "city_name": city,
                "country_code": country,
                "type": "AIRPORT",
            })
    # Exact code match first
    matches.sort(key=lambda m: m["code"].lower() != needle)
    return matches


def resolve_city(code: str) -> tuple[str, str | None]:
    """Map an airport or city code to (city code, city name).

    Unknown codes are returned as-is with no city name.
    """
    code = code.strip().upper()
    row = _BY_CODE.get(code) or _BY_CITY_CODE.get(code)
    if row is None:
        return code, None
    return row[3], row[2]
