from fooddiscover.config import get_settings
from fooddiscover.database import Base, make_engine, make_session_factory
from fooddiscover.models import User, Food

settings = get_settings()
engine = make_engine(settings.database_url)

# Create tables
Base.metadata.create_all(bind=engine)

db = make_session_factory(engine)()

DEMO_PASSWORD = "fooddiscover123"

# Sample accounts, created once
users = [
    User(
        first_name="Asha",
        last_name="Rao",
        email="asha@example.com",
        username="asha_eats",
        location="Bengaluru",
        food_interests=["asian", "desserts"],
        dietary_restrictions="vegetarian",
    ),
    User(
        first_name="Marco",
        last_name="Bianchi",
        email="marco@example.com",
        username="marco_b",
        location="Mumbai",
        food_interests=["italian", "mediterranean"],
    ),
]

created = 0
for user in users:
    if db.query(User).filter(User.email == user.email).first():
        continue
    user.set_password(DEMO_PASSWORD, settings)
    db.add(user)
    created += 1

db.commit()

print("Database seeded successfully!")
print(f"  - {created} users created (password: {DEMO_PASSWORD})")
print(f"  - {db.query(Food).count()} food listings present")

db.close()
