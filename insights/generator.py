from __future__ import annotations
import logging
from datetime import date, timedelta
import numpy as np
import pandas as pd
from .config import (
    RESTAURANT_COUNT, HISTORY_DAYS, OPENING_HOUR, CLOSING_HOUR,
    PREDICTION_PROFILES, DEFAULT_PROFILE, PredictionProfile,
)

logger = logging.getLogger(__name__)

ZONES = [
    "Greater Accra", "Ashanti", "Western", "Central", "Eastern",
    "Northern", "Upper East", "Upper West", "Volta", "Brong Ahafo",
]

FOODS = [
    "Jollof Rice", "Waakye", "Banku & Tilapia", "Kelewele", "Fried Rice",
    "Red Red", "Fufu & Light Soup", "Kenkey", "Tuo Zaafi", "Palmnut Soup",
    "Groundnut Soup", "Fried Plantain", "Gari & Beans", "Yam & Kontomire",
    "Chicken Light Soup", "Beef Stew", "Fish & Chips", "Pepper Soup",
    "Bofrot", "Meat Pie", "Spring Rolls", "Shawarma",
]

LOCATIONS = [
    "Accra Central", "Kumasi", "Tema", "Takoradi", "Cape Coast",
    "Tamale", "Ho", "Sunyani", "Koforidua", "Bolgatanga",
    "Wa", "Techiman", "Nkawkaw", "Obuasi", "Dunkwa",
    "Winneba", "Kasoa", "Madina", "Teshie", "Ashaiman",
]

RETAILER_NAMES = [
    "Tasty Queen", "KFC", "Pizzaman Chickenman", "Papaye Fast Food", "ADB Gob3",
    "Atta Barima", "Pice Restaurant", "Obaa Gifty Waakye", "Barbeque City",
    "Mango Down Waakye", "Hajia Sauda Restaurant", "Waakye Abrantie", "MJ's Cuisine",
    "Betty's Kitchen", "Haatso Waakye (Hajia Rahi)",
    "Fatawu Bicycle, Nyohani Round About", "Harry's Kitchen", "Abura GRA Gobe",
    "Adiza Waakye Special", "KFC Kasoa", "Starbites", "KFC Haatso", "Tasty Chef",
    "KFC Dome", "Capital View Hotel", "KFC Adenta", "Ayewamu By Jane", "Vapiano Foods",
    "Alhaji's Wife Waakye", "KFC Dansoman", "KFC Osu", "Eno Special", "Jays Cafe",
    "God Is Love Chopbar", "KFC Sakumono", "KFC Weija", "Kinis Kitchen",
    "Pipe Ano Insha Allah Waakye", "Blue Lagoon Junction Waakye (Aj & Rams)",
    "Queens Hall Gob3", "Nuamah's Kitchen", "KFC Ashaiman", "Adom Joy Fast Foods",
    "Papa's Pizza", "Lets Eat Good", "KFC Melcom", "Mayday Shawarma & Bites",
    "Akua Poly", "KFC Tema", "IceMan Pub & Restaurant", "LawBest Cuisine",
    "Sister Afia Angwamo", "Shapii Shawarma", "Berny Joy | Daavi", "KFC Kwashieman",
    "Hajia Saida Waakye", "KFC EL Boundary", "Frank Test Restaurant",
    "Central Market Gobe", "Kubekrom Restaurant Test", "Maranatha Fast Foods",
    "Sweet Bite Foods", "Kate Corner", "Rahko School Joint", "Dont Mind Your Wife",
    "Maa Afia's Pork Cafe", "Santa Rose Restaurant", "Chef Rudy's Kitchen",
    "KFC - Bekwai", "KFC Kwabenya", "KFC Ablekuma", "Hoxton Food Court (Apatakesi)",
    "KFC Kubekrom", "Bels Kitchen", "Hanch Community 4", "Cookhaus", "KFC Takoradi",
    "Jollof King", "Taste and See - Test", "Roliz Pizza", "Keren's Test Restaurant",
    "DVLA Waakye", "Chapel Hill Beans", "Kofan", "Express Food Joint | GRA Waakye",
    "Marwako Fast Food", "Deep Dish Waakye", "Sweet Mummy's Yummy", "Home Made Special",
    "Ataa Maame", "Vodafone Waakye", "De Stir Catering Services", "Bread Boutique",
    "808 Bistro", "Sek Tasty Bite & Ganis Pizza", "Adani Waakye", "Latifa Waakye",
    "Gobe Gucci", "Sweet Mother Waakye", "X5 Plus", "Bar Naas",
    "Nogora Junction  Indomie & Food Bay", "Ayisha Food Joint (Aisha)",
    "Mr. Robert Fries", "Adenta Kenkey House", "Muni Diehuo", "Daavi's Special Gobe",
    "Bar Naas Pizza", "Circle Spot Tuo Zaafi", "Maa Regi's Restaurant",
    "Ginnette Foods", "Linda Dor Restaurant", "A.D Motors Jollof (Makafui's Inn)",
    "Bode Gob3", "Efie Nkwan Specials", "Asew Pa Ye Restaurant", "Bantama Market Gob3",
    "The Joint Cafe | Summerlight", "Mr. Awal's Waakye", "The Dish", "Lizz Kitchen",
    "Queens Hall Gobe", "Odo Rice | Feel Free Restaurant", "Mr Brown's Kitchen",
    "Ceci's Eating Place", "KFC Circle", "Shawarma King", "KFC 37 Liberation",
    "Original Alhassan Indomie", "Chez Lee", "Prison's Canteen Waakye",
    "KFC EL Lagos Avenue", "Macmon Special Foods", "Estate Kitchen", "Fatawu Bicycle",
    "Nana's Kitchen", "Special Waakye Boutique", "Seaman Kenkey", "James Fast Food",
    "Adams Kitchen", "Melcom - Baatsona", "Barima Waakye Special Joint", "Rockz Waakye",
    "Aunte Suzzie's Indomie", "Pizza Hut", "Bar Naas Shawarma", "Becca Beans",
    "KFC EL Hills", "Koko Porks", "F n J Kitchen",
    "De Shallot Eatery | Nhyoni Roundabout", "Abena Special", "Asew Special Koko",
    "KFC KNUST", "Super-Mc Restaurant", "10 Minutes Kitchen", "Insha Allah Food Joint",
    "Waakye Teq", "Achekke Chez Vivian", "Shawarma Boiz", "Degree Catering Services",
    "Mama Lad Special Rice", "Adford Pub & Restaurant",
    "Juli Beans (Aunty Monica-18 Junction Beans)", "KFC Bekwai", "Daavi Special Gobe",
    "KFC Cape Coast", "Laud K Pharmacy", "Nuamah's Cafe", "Aduane Restaurant - Test",
    "PhiloBite Noodles", "Amina's Tuo Zaafi", "KFC Koforidua", "Akos Special Angwamoo",
    "Derbi's Special Noodles", "Jos Bakery", "Ben's Pizza", "Emma Locals",
    "The Joint Cafe", "Broni's Kitchen", "Dreamers Kenkey Restaurant", "Doree Catering",
    "Topzy Foods", "Rahko Kenkey", "Makeeda Kitchen",
    "Zack's Big Bite Fast Food & Restaurant", "Asantewaa Chop Bar",
    "Focus Street Kitchen", "My Hot Chicken", "Aboude Fast Food", "Ruhdan Catering",
    "Kobjoe Pharmacy", "Joe De Jonny Restaurant", "Downtown Canteen",
    "5:30 Special Foods", "Efie ne Fie Aduane", "Takyiwa's Kitchen",
    "Daavi Ama Chop Bar", "KFC Dodowa Road", "Melcom Plus - Kaneshie", "Nite Fast Food",
    "Street Bites", "Ibiza Foods", "Lebene Kitchen (Pigfarm)", "Chop Better Fast Food",
    "Lovecare Foods", "Dzigbordi Home Cooking", "Holy Mary Fast Food",
    "Mbrodzem Chop Bar", "Nite Nite", "Papaye Fast Food - Awudome", "Ruby's Spicy",
    "Adiz Special Food", "Sunkwa Fast Food",
    "Hannah's Special Foods (Ecobank Traffic Beans)", "Melcom - Boundary Road",
    "Ampesi Boutique & Local Foods Hub", "Lynda's Delight", "Pizza Inn",
    "John Barnes Beans |Gobe City", "Daavi's Special Beans (Gob…õ)",
    "Kersting's Pizza 'N' More", "GNAT Restaurant", "Gadef Restaurant",
    "Adiza Waakye Special (Hadizah Baatsonaa Total)", "Awurade Kasa Kenkey Joint",
    "Columbia Waakye", "Dine With Sarry", "Sweet Apple Beans", "Aba Yaa Special",
    "Becky Gob3", "Linswrap Catering Services", "OJ's Kitchen",
    "Auntie Mary Special Indomie", "Lokors Tuo Zaafi",
    "Mpeabo Nkoaa (Boys Boys Fast Food)", "KFC Manet Junction", "Luke City",
    "Bubbles Pub And Grill", "Del-Trish Food Haven", "HJ Indomie & Spaghetti Special",
    "Junction Mall", "Micky Lan's Kitchen", "Derricks Indomie", "Mini Gobe Gate",
    "Daavi Gobe", "Super - Mc Restaurant", "Fausty's Pub",
]

PHONE_PREFIXES = ["024", "054", "055", "026", "027"]

# caja geográfica de Ghana
LAT_RANGE = (4.5, 10.5)
LNG_RANGE = (-3.5, 0.5)

RESTAURANT_COLUMNS = [
    "id", "name", "zone", "contact", "location", "avg_daily_orders", "avg_revenue",
    "cancellation_rate", "peak_hour", "top_items", "longitude", "latitude",
]
HISTORICAL_COLUMNS = [
    "restaurant_id", "date", "hour", "orders", "revenue",
    "cancellations", "cancelled_revenue", "stock_out_items",
]
PREDICTION_COLUMNS = [
    "restaurant_id", "date", "predicted_orders", "expected_revenue", "potential_revenue",
    "confidence_lower", "confidence_upper", "risk_level", "order_variance", "revenue_variance",
]

TOP_ITEMS_PER_RESTAURANT = 5


def _rng(rng: np.random.Generator | None) -> np.random.Generator:
    return rng if rng is not None else np.random.default_rng()


def round_half_up(values) -> np.ndarray:
    """Redondeo al entero más cercano (.5 hacia arriba), no bancario."""
    return np.floor(np.asarray(values, dtype=float) + 0.5).astype(int)


def _phone_number(rng: np.random.Generator) -> str:
    prefix = PHONE_PREFIXES[int(rng.integers(0, len(PHONE_PREFIXES)))]
    suffix = int(rng.integers(0, 10_000_000))
    return f"+233 {prefix} {suffix:07d}"


def generate_restaurants(count: int = RESTAURANT_COUNT, rng: np.random.Generator | None = None) -> pd.DataFrame:
    if count < 0:
        raise ValueError("count must be >= 0")
    rng = _rng(rng)

    rows = []
    for i in range(count):
        lat = float(rng.uniform(*LAT_RANGE))
        lng = float(rng.uniform(*LNG_RANGE))
        top_items = rng.choice(len(FOODS), size=TOP_ITEMS_PER_RESTAURANT, replace=False)
        rows.append({
            "id": f"rest_{i + 1}",
            "name": RETAILER_NAMES[i] if i < len(RETAILER_NAMES) else f"Restaurant {i + 1}",
            "zone": ZONES[int(rng.integers(0, len(ZONES)))],
            "contact": _phone_number(rng),
            "location": LOCATIONS[int(rng.integers(0, len(LOCATIONS)))],
            # >= 5 siempre: se usa como divisor (valor por pedido)
            "avg_daily_orders": int(rng.integers(5, 55)),
            "avg_revenue": int(rng.integers(100, 900)),
            "cancellation_rate": float(rng.random() * 0.3),
            "peak_hour": int(rng.integers(12, 16)),
            "top_items": [FOODS[j] for j in top_items],
            "longitude": lng,
            "latitude": lat,
        })

    logger.info("Generated %d restaurants", count)
    return pd.DataFrame(rows, columns=RESTAURANT_COLUMNS)


def _order_value(restaurants: pd.DataFrame) -> np.ndarray:
    orders = restaurants["avg_daily_orders"].to_numpy(dtype=float)
    if (orders < 1).any():
        raise ValueError("avg_daily_orders must be >= 1 for every restaurant")
    return restaurants["avg_revenue"].to_numpy(dtype=float) / orders


def generate_historical_data(restaurants: pd.DataFrame, days: int = HISTORY_DAYS,
                             rng: np.random.Generator | None = None,
                             today: date | None = None) -> pd.DataFrame:
    if days < 0:
        raise ValueError("days must be >= 0")
    rng = _rng(rng)
    today = today or date.today()

    n_rest = len(restaurants)
    hours = np.arange(OPENING_HOUR, CLOSING_HOUR)
    size = days * n_rest * len(hours)
    if size == 0:
        return pd.DataFrame(columns=HISTORICAL_COLUMNS)

    # malla día x restaurante x hora (día más reciente primero)
    day_idx = np.repeat(np.arange(days), n_rest * len(hours))
    rest_idx = np.tile(np.repeat(np.arange(n_rest), len(hours)), days)
    hour = np.tile(hours, days * n_rest)

    avg_orders = restaurants["avg_daily_orders"].to_numpy(dtype=float)[rest_idx]
    peak = restaurants["peak_hour"].to_numpy()[rest_idx]
    rate = restaurants["cancellation_rate"].to_numpy(dtype=float)[rest_idx]
    aov = _order_value(restaurants)[rest_idx]

    base = np.where(np.abs(hour - peak) <= 1, avg_orders * 0.4, avg_orders * 0.05)
    orders = np.floor(base + (rng.random(size) - 0.5) * base * 0.5).astype(int)
    revenue = orders * aov * (0.8 + rng.random(size) * 0.4)
    cancellations = np.floor(orders * rate * rng.random(size)).astype(int)
    cancelled_revenue = cancellations * aov
    stock_out_len = rng.integers(1, 4, size)

    keep = orders > 0
    top_items = restaurants["top_items"].tolist()
    ids = restaurants["id"].to_numpy()
    dates = np.array([(today - timedelta(days=d)).isoformat() for d in range(days)])

    stock_out = [
        list(top_items[r][:k]) if c > 0 else []
        for r, c, k in zip(rest_idx[keep], cancellations[keep], stock_out_len[keep])
    ]

    df = pd.DataFrame({
        "restaurant_id": ids[rest_idx[keep]],
        "date": dates[day_idx[keep]],
        "hour": hour[keep],
        "orders": orders[keep],
        "revenue": revenue[keep],
        "cancellations": cancellations[keep],
        "cancelled_revenue": cancelled_revenue[keep],
        "stock_out_items": stock_out,
    }, columns=HISTORICAL_COLUMNS)

    logger.info("Generated %d historical records over %d days", len(df), days)
    return df


def resolve_profile(profile: str | PredictionProfile) -> PredictionProfile:
    if isinstance(profile, PredictionProfile):
        return profile
    try:
        return PREDICTION_PROFILES[profile]
    except KeyError:
        raise ValueError(f"Unknown prediction profile: {profile}") from None


def risk_levels(cancellation_rate) -> np.ndarray:
    rate = np.asarray(cancellation_rate, dtype=float)
    return np.select([rate > 0.2, rate > 0.1], ["high", "medium"], default="low")


def generate_predictions(restaurants: pd.DataFrame, profile: str | PredictionProfile = DEFAULT_PROFILE,
                         rng: np.random.Generator | None = None,
                         today: date | None = None) -> pd.DataFrame:
    prof = resolve_profile(profile)
    rng = _rng(rng)
    tomorrow = ((today or date.today()) + timedelta(days=1)).isoformat()

    if restaurants.empty:
        return pd.DataFrame(columns=PREDICTION_COLUMNS)

    avg_orders = restaurants["avg_daily_orders"].to_numpy(dtype=float)
    avg_revenue = restaurants["avg_revenue"].to_numpy(dtype=float)
    rate = restaurants["cancellation_rate"].to_numpy(dtype=float)
    aov = _order_value(restaurants)

    predicted = avg_orders * rng.uniform(prof.multiplier_low, prof.multiplier_high, len(restaurants))
    confidence = prof.variance * predicted
    expected = predicted * aov * (1 - rate)
    potential = predicted * aov

    predicted_orders = round_half_up(predicted)
    expected_revenue = round_half_up(expected)

    df = pd.DataFrame({
        "restaurant_id": restaurants["id"].to_numpy(),
        "date": tomorrow,
        "predicted_orders": predicted_orders,
        "expected_revenue": expected_revenue,
        "potential_revenue": round_half_up(potential),
        "confidence_lower": round_half_up(predicted - confidence),
        "confidence_upper": round_half_up(predicted + confidence),
        # el riesgo es atributo del restaurante, no del pronóstico
        "risk_level": risk_levels(rate),
        "order_variance": round_half_up(predicted_orders - avg_orders),
        "revenue_variance": round_half_up(expected_revenue - avg_revenue),
    }, columns=PREDICTION_COLUMNS)

    logger.info("Generated %d predictions for %s", len(df), tomorrow)
    return df
