"""
Create any missing tables; existing tables and data are left alone.
Usage: python -m jobtracker.scripts.ensure_tables
"""
from jobtracker.database import ensure_tables_exist


def main():
    ensure_tables_exist()
    print("DB table check complete: created only missing tables.")


if __name__ == "__main__":
    main()
