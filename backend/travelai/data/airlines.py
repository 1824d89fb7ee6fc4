"""Carrier code to display name lookup for flight segments."""

AIRLINE_NAMES: dict[str, str] = {
    # Europe
    "BA": "British Airways", "VS": "Virgin Atlantic", "U2": "easyJet",
    "FR": "Ryanair", "AF": "Air France", "KL": "KLM",
    "LH": "Lufthansa", "LX": "Swiss", "OS": "Austrian",
    "SN": "Brussels Airlines", "IB": "Iberia", "VY": "Vueling",
    "AZ": "ITA Airways", "TP": "TAP Air Portugal", "EI": "Aer Lingus",
    "SK": "SAS", "AY": "Finnair", "TK": "Turkish Airlines",
    "A3": "Aegean Airlines", "W6": "Wizz Air",
    # North America
    "AA": "American Airlines", "DL": "Delta Air Lines", "UA": "United Airlines",
    "B6": "JetBlue Airways", "AS": "Alaska Airlines", "WN": "Southwest Airlines",
    "AC": "Air Canada", "WS": "WestJet", "AM": "Aeromexico",
    # Middle East, Asia, Oceania
    "EK": "Emirates", "QR": "Qatar Airways", "EY": "Etihad Airways",
    "SQ": "Singapore Airlines", "CX": "Cathay Pacific", "NH": "ANA",
    "JL": "Japan Airlines", "TG": "Thai Airways", "QF": "Qantas",
    # South America, Africa
    "LA": "LATAM Airlines", "AR": "Aerolineas Argentinas", "SA": "South African Airways",
    "MS": "EgyptAir", "ET": "Ethiopian Airlines",
}


def airline_name(code: str) -> str:
    return AIRLINE_NAMES.get(code, code)
