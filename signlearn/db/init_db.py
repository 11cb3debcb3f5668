"""Database initialization and catalogue seeding."""
import logging
from typing import Dict, List
from sqlalchemy.orm import Session
from signlearn.db.database import engine, SessionLocal, Base
from signlearn.db.models import Category, Question, TrafficSign

logger = logging.getLogger(__name__)

# Indian road signs, in display order
INDIAN_TRAFFIC_SIGNS: List[Dict] = [
    # Mandatory
    {
        "id": "stop", "name_english": "Stop", "name_hindi": "रुकें", "category": "mandatory",
        "meaning": "Stop completely before the intersection",
        "hindi_meaning": "चौराहे से पहले पूरी तरह रुकें",
        "explanation": "Come to a complete halt. Check all directions before proceeding.",
        "real_life_example": "At major intersections, railway crossings, or blind turns.",
        "color": "#FF0000", "shape": "Octagon",
    },
    {
        "id": "give_way", "name_english": "Give Way", "name_hindi": "रास्ता दें", "category": "mandatory",
        "meaning": "Slow down and give way to traffic on the main road",
        "hindi_meaning": "धीमे हो जाएं और मुख्य सड़क पर यातायात को रास्ता दें",
        "explanation": "Yield to vehicles on the priority road. Stop if necessary.",
        "real_life_example": "When merging onto highways or entering main roads.",
        "color": "#FFFFFF", "shape": "Inverted Triangle",
    },
    {
        "id": "speed_limit_40", "name_english": "Speed Limit 40", "name_hindi": "गति सीमा 40",
        "category": "mandatory",
        "meaning": "Maximum speed allowed is 40 km/h",
        "hindi_meaning": "अधिकतम गति 40 किमी/घंटा है",
        "explanation": "Do not exceed 40 km/h in this zone.",
        "real_life_example": "School zones, residential areas, narrow roads.",
        "color": "#FF0000", "shape": "Circle",
    },
    # Prohibition
    {
        "id": "no_entry", "name_english": "No Entry", "name_hindi": "प्रवेश निषेध", "category": "prohibition",
        "meaning": "Entry prohibited from this direction",
        "hindi_meaning": "इस दिशा से प्रवेश निषेध",
        "explanation": "Vehicles cannot enter from this side. Usually one-way roads.",
        "real_life_example": "One-way streets, exit-only gates, restricted zones.",
        "color": "#FF0000", "shape": "Circle",
    },
    {
        "id": "no_parking", "name_english": "No Parking", "name_hindi": "पार्किंग निषेध",
        "category": "prohibition",
        "meaning": "Parking not allowed in this area",
        "hindi_meaning": "इस क्षेत्र में पार्किंग की अनुमति नहीं",
        "explanation": "Stopping for loading/unloading may be allowed but not parking.",
        "real_life_example": "Busy roads, fire lanes, near hospitals.",
        "color": "#FF0000", "shape": "Circle",
    },
    {
        "id": "no_horn", "name_english": "No Horn", "name_hindi": "हॉर्न निषेध", "category": "prohibition",
        "meaning": "Horn use prohibited",
        "hindi_meaning": "हॉर्न बजाना मना है",
        "explanation": "Do not use horn in this zone.",
        "real_life_example": "Near hospitals, schools, silence zones.",
        "color": "#FF0000", "shape": "Circle",
    },
    {
        "id": "no_overtaking", "name_english": "No Overtaking", "name_hindi": "ओवरटेक निषेध",
        "category": "prohibition",
        "meaning": "Overtaking not allowed",
        "hindi_meaning": "ओवरटेक करना मना है",
        "explanation": "Stay in your lane. Do not overtake.",
        "real_life_example": "Narrow roads, blind curves, near schools.",
        "color": "#FF0000", "shape": "Circle",
    },
    {
        "id": "no_u_turn", "name_english": "No U-Turn", "name_hindi": "यू-टर्न निषेध", "category": "prohibition",
        "meaning": "U-turn not permitted",
        "hindi_meaning": "यू-टर्न की अनुमति नहीं",
        "explanation": "Continue ahead. Find another route to turn.",
        "real_life_example": "Busy intersections, highways.",
        "color": "#FF0000", "shape": "Circle",
    },
    # Warning
    {
        "id": "school_ahead", "name_english": "School Ahead", "name_hindi": "स्कूल आगे", "category": "warning",
        "meaning": "School zone ahead - children may cross",
        "hindi_meaning": "आगे स्कूल क्षेत्र - बच्चे रास्ता पार कर सकते हैं",
        "explanation": "Reduce speed. Be alert for children crossing the road.",
        "real_life_example": "Near schools, especially during school hours.",
        "color": "#FF0000", "shape": "Triangle",
    },
    {
        "id": "sharp_curve", "name_english": "Sharp Curve", "name_hindi": "तीखा मोड़", "category": "warning",
        "meaning": "Sharp curve ahead - reduce speed",
        "hindi_meaning": "आगे तीखा मोड़ - गति कम करें",
        "explanation": "Slow down before entering the curve. Use horn on blind curves.",
        "real_life_example": "Mountain roads, rural highways.",
        "color": "#FF0000", "shape": "Triangle",
    },
    {
        "id": "two_way_traffic", "name_english": "Two-Way Traffic", "name_hindi": "दो तरफा यातायात",
        "category": "warning",
        "meaning": "Road ahead has traffic from both directions",
        "hindi_meaning": "आगे सड़क पर दोनों दिशाओं से यातायात",
        "explanation": "Stay on your side. Divided road ends ahead.",
        "real_life_example": "Where divided highway becomes two-way road.",
        "color": "#FF0000", "shape": "Triangle",
    },
    {
        "id": "narrow_road", "name_english": "Narrow Road Ahead", "name_hindi": "आगे संकरी सड़क",
        "category": "warning",
        "meaning": "Road becomes narrower ahead",
        "hindi_meaning": "आगे सड़क संकरी हो जाती है",
        "explanation": "Reduce speed and be prepared to give way.",
        "real_life_example": "Construction zones, bridges, village roads.",
        "color": "#FF0000", "shape": "Triangle",
    },
    {
        "id": "slippery_road", "name_english": "Slippery Road", "name_hindi": "फिसलन वाली सड़क",
        "category": "warning",
        "meaning": "Road may be slippery when wet",
        "hindi_meaning": "गीली होने पर सड़क फिसलन भरी हो सकती है",
        "explanation": "Reduce speed in rain. Avoid sudden braking.",
        "real_life_example": "During monsoon, near water bodies.",
        "color": "#FF0000", "shape": "Triangle",
    },
    # Informatory
    {
        "id": "parking_allowed", "name_english": "Parking", "name_hindi": "पार्किंग", "category": "informatory",
        "meaning": "Parking facility available",
        "hindi_meaning": "पार्किंग सुविधा उपलब्ध",
        "explanation": "You can park your vehicle in this area.",
        "real_life_example": "Public parking lots, designated parking zones.",
        "color": "#0066CC", "shape": "Rectangle",
    },
    {
        "id": "hospital", "name_english": "Hospital", "name_hindi": "अस्पताल", "category": "informatory",
        "meaning": "Hospital nearby - maintain silence",
        "hindi_meaning": "अस्पताल नज़दीक - शांति बनाए रखें",
        "explanation": "Avoid using horn. Drive quietly.",
        "real_life_example": "Near hospitals and medical facilities.",
        "color": "#0066CC", "shape": "Rectangle",
    },
    {
        "id": "petrol_pump", "name_english": "Petrol Pump", "name_hindi": "पेट्रोल पंप", "category": "informatory",
        "meaning": "Fuel station ahead",
        "hindi_meaning": "आगे ईंधन स्टेशन",
        "explanation": "Refueling facility available ahead.",
        "real_life_example": "On highways and main roads.",
        "color": "#0066CC", "shape": "Rectangle",
    },
    {
        "id": "first_aid", "name_english": "First Aid", "name_hindi": "प्राथमिक चिकित्सा",
        "category": "informatory",
        "meaning": "First aid post available",
        "hindi_meaning": "प्राथमिक चिकित्सा उपलब्ध",
        "explanation": "Emergency medical help available.",
        "real_life_example": "On highways, tourist spots.",
        "color": "#0066CC", "shape": "Rectangle",
    },
]

CATEGORY_NAMES = {
    "mandatory": "Mandatory Signs",
    "prohibition": "Prohibitory Signs",
    "warning": "Cautionary Signs",
    "informatory": "Informatory Signs",
}

ICON_URL_TEMPLATE = "/static/signs/{sign_id}.png"


def build_sign_rows() -> List[Dict]:
    """Catalogue rows with sort order and icon references filled in."""
    rows = []
    for position, sign in enumerate(INDIAN_TRAFFIC_SIGNS, start=1):
        rows.append({
            **sign,
            "icon_urls": [ICON_URL_TEMPLATE.format(sign_id=sign["id"])],
            "video_url": None,
            "sort_order": position,
        })
    return rows


def build_question_rows(category_ids: Dict[str, int]) -> List[Dict]:
    """
    Derive one two-choice question per sign.

    The wrong option is the meaning of the next sign in the catalogue and the
    correct slot alternates between A and B.
    """
    rows = []
    count = len(INDIAN_TRAFFIC_SIGNS)
    for i, sign in enumerate(INDIAN_TRAFFIC_SIGNS):
        other = INDIAN_TRAFFIC_SIGNS[(i + 1) % count]
        correct_first = i % 2 == 0
        rows.append({
            "category_id": category_ids.get(sign["category"]),
            "question": f"What does the \"{sign['name_english']}\" sign mean?",
            "option_a": sign["meaning"] if correct_first else other["meaning"],
            "option_b": other["meaning"] if correct_first else sign["meaning"],
            "correct_answer": "A" if correct_first else "B",
            "explanation": sign["explanation"],
            "media_type": "image",
            "media_url": ICON_URL_TEMPLATE.format(sign_id=sign["id"]),
        })
    return rows


def seed_catalogue(db: Session) -> None:
    """Seed signs, categories and questions. Tables that already hold rows are left alone."""
    existing_signs = db.query(TrafficSign).count()
    if existing_signs > 0:
        logger.info(f"traffic_signs already contains {existing_signs} entries. Skipping seed.")
    else:
        for row in build_sign_rows():
            db.add(TrafficSign(**row))
        logger.info(f"Seeded {len(INDIAN_TRAFFIC_SIGNS)} traffic signs.")

    if db.query(Category).count() == 0:
        for name in CATEGORY_NAMES.values():
            db.add(Category(name=name))
        db.flush()
        logger.info(f"Seeded {len(CATEGORY_NAMES)} categories.")

    if db.query(Question).count() == 0:
        by_name = {c.name: c.id for c in db.query(Category).all()}
        category_ids = {tag: by_name.get(name) for tag, name in CATEGORY_NAMES.items()}
        questions = build_question_rows(category_ids)
        for row in questions:
            db.add(Question(**row))
        logger.info(f"Seeded {len(questions)} questions.")

    db.commit()


def init_db() -> None:
    """
    Initialize database: create tables and seed reference data.

    Safe to call multiple times - all operations are idempotent.
    """
    logger.info("Initializing database...")
    Base.metadata.create_all(bind=engine)
    logger.info("Tables created/verified successfully.")

    db = SessionLocal()
    try:
        seed_catalogue(db)
        logger.info("Database initialization complete.")
    except Exception as e:
        db.rollback()
        logger.error(f"Error during database initialization: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    init_db()
