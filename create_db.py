from app import create_app
from models import db
from models.user import User
from models.customer import Customer
from models.pricing import PricingConfig, DEFAULT_RATES

app = create_app()


def create_database():
    with app.app_context():
        # drop existing tables
        db.drop_all()
        print("Dropped old database")

        db.create_all()
        print("Created new database")

        admin_user = User(name='Shop Admin', email='admin@laundry.local', role='admin')
        admin_user.set_password('admin123')
        db.session.add(admin_user)

        staff_user = User(name='Front Desk', email='staff@laundry.local', role='staff')
        staff_user.set_password('staff123')
        db.session.add(staff_user)
        db.session.flush()

        db.session.add(PricingConfig(
            clothes_price_per_kg=DEFAULT_RATES['clothes'],
            blankets_light_price_per_kg=DEFAULT_RATES['blankets_light'],
            blankets_thick_price_per_kg=DEFAULT_RATES['blankets_thick'],
            updated_by=admin_user.id,
        ))

        customers = [
            Customer(name='Maria Santos', email='maria@example.com', phone='09171234567', created_by=staff_user.id),
            Customer(name='Juan Dela Cruz', email='juan@example.com', phone='09181234567', created_by=staff_user.id),
        ]
        for customer in customers:
            db.session.add(customer)

        db.session.commit()
        print("Seeded default data")
        print("Sign-in details:")
        print("admin@laundry.local / admin123")
        print("staff@laundry.local / staff123")


if __name__ == '__main__':
    create_database()
