"""
Create all registry tables in the PostgreSQL test database.
"""
from registry.connection import DatabaseSessionProvider, DatabaseSettings

if __name__ == "__main__":
    settings = DatabaseSettings(
        database="blacklist_registry_test",
        user="registry_user",
        password="registry_password",
        host="localhost",
        port=5432
    )
    provider = DatabaseSessionProvider(settings=settings)
    provider.init()
    print("Creating all tables in blacklist_registry_test...")
    provider.create_tables()
    print("Tables created.")
