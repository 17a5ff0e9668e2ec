from faceattend.analytics.reports import ReportService
from faceattend.database.db_manager import DatabaseManager, PersistenceError
from faceattend.database.models import AttendanceStore, IdentityStore
from faceattend.services.attendance_service import AttendanceLedger
from faceattend.services.enrollment_service import EnrollmentService
from faceattend.services.recognition_service import RecognitionService


def initialize_database(db_manager):
    """
    Initialize database if it doesn't exist.
    """
    if not db_manager.is_initialized():
        try:
            db_manager.initialize_db()
            print("Database initialized successfully.")
        except PersistenceError as e:
            print(f"Warning: Database initialization failed: {e}")
    else:
        print("Database connection verified.")


def build_services(db_path=None, exports_dir=None):
    """
    Wire the enrollment, attendance and recognition services to one database.
    """
    db_manager = DatabaseManager(db_path)
    initialize_database(db_manager)
    enrollment = EnrollmentService(IdentityStore(db_manager))
    ledger = AttendanceLedger(AttendanceStore(db_manager), reports=ReportService(exports_dir))
    recognition = RecognitionService(enrollment, ledger)
    return recognition


def _confirm(prompt):
    return input(f"{prompt} (yes/no): ").strip().lower() in ['yes', 'y']


def _pause():
    print("\nPress Enter to return to menu...")
    input()


def list_identities(enrollment):
    if not enrollment.identities:
        print("No enrolled users found.")
        return
    print(f"\n{'ID':<16}{'Name':<30}Enrolled")
    print("-" * 60)
    for identity in enrollment.identities:
        print(f"{identity.id:<16}{identity.name:<30}{identity.enrolled_at:%Y-%m-%d %H:%M}")


def show_summary(ledger):
    metrics = ledger.metrics()
    print(f"\nToday: {metrics.today_count()}    Total: {metrics.total_count()}")
    daily = metrics.daily_summary()
    if not daily.empty:
        print("\nDaily attendance:")
        print(daily.to_string(index=False))
    people = metrics.person_summary()
    if not people.empty:
        print("\nPer person:")
        print(people.to_string(index=False))


def _report_error(service):
    if service.last_error:
        print(f"Warning: {service.last_error}")


def main(db_path=None, exports_dir=None):
    recognition = build_services(db_path, exports_dir)
    enrollment = recognition.enrollment
    ledger = recognition.ledger
    _report_error(enrollment)
    _report_error(ledger)

    # Main menu loop
    while True:
        print()
        print("=" * 60)
        print("ATTENDANCE SYSTEM - MAIN MENU")
        print("=" * 60)
        print("1. List enrolled users")
        print("2. Remove enrollment")
        print("3. Remove all enrollments")
        print("4. Attendance summary")
        print("5. Clear today's attendance")
        print("6. Clear all attendance")
        print("7. Export attendance to CSV")
        print("8. Exit")
        print("=" * 60)
        choice = input("Select option: ").strip()

        if choice == "1":
            list_identities(enrollment)
            _pause()

        elif choice == "2":
            list_identities(enrollment)
            raw = input("\nEnter User ID to remove (or 'cancel' to abort): ").strip()
            identity = enrollment.get(int(raw)) if raw.isdigit() else None

            if raw.lower() == 'cancel':
                print("Cancelled.")
            elif not raw.isdigit():
                print("Invalid User ID.")
            elif identity is None:
                print(f"Error: User '{raw}' not found.")
            elif _confirm(f"Are you sure you want to remove enrollment for '{identity.name}' ({identity.id})?"):
                enrollment.delete_identity(identity.id)
                print("Face deleted.")
                _report_error(enrollment)
            else:
                print("Cancelled.")
            _pause()

        elif choice == "3":
            if _confirm("Delete all registered faces? This cannot be undone."):
                enrollment.clear_all_identities()
                print("All faces cleared.")
                _report_error(enrollment)
            else:
                print("Cancelled.")
            _pause()

        elif choice == "4":
            show_summary(ledger)
            _pause()

        elif choice == "5":
            if _confirm("Clear today's attendance records?"):
                removed = ledger.clear_today()
                print(f"Today's attendance cleared ({removed} records).")
                _report_error(ledger)
            else:
                print("Cancelled.")
            _pause()

        elif choice == "6":
            if _confirm("Delete all attendance records? This cannot be undone."):
                ledger.clear_all()
                print("All attendance records cleared.")
                _report_error(ledger)
            else:
                print("Cancelled.")
            _pause()

        elif choice == "7":
            path = ledger.export_csv()
            if path is None:
                print("No records to export!")
            else:
                print(f"Attendance exported to {path}")
            _pause()

        elif choice == "8":
            print("\nExiting application...")
            break

        else:
            print("Invalid option. Please try again.")
            _pause()


if __name__ == "__main__":
    main()
