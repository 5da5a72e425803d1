import argparse

from hatchwatch.database import SessionLocal
from hatchwatch.models import Device, UserDevice


def main():
    parser = argparse.ArgumentParser(description="Register an incubator and link it to a user")
    parser.add_argument("--device-id", required=True, help="Device ID (e.g. INC-0003)")
    parser.add_argument("--user", required=True, help="User id to associate the device with")
    parser.add_argument("--name", help="Display name (defaults to the device id)")
    parser.add_argument("--location", default="", help="Location (optional)")

    args = parser.parse_args()

    session = SessionLocal()
    try:
        device = session.query(Device).filter(Device.device_id == args.device_id).first()
        if device:
            print(f"Device '{args.device_id}' already exists, linking only.")
        else:
            device = Device(
                device_id=args.device_id,
                name=args.name or args.device_id,
                location=args.location,
                is_active=True,
            )
            session.add(device)
            session.commit()

        link = session.query(UserDevice).filter(
            UserDevice.user_id == args.user,
            UserDevice.device_id == args.device_id,
        ).first()
        if not link:
            session.add(UserDevice(user_id=args.user, device_id=args.device_id))
            session.commit()

        print(f"\n✅ Device ready")
        print(f"--------------------------------")
        print(f"ID:       {device.device_id}")
        print(f"Name:     {device.name}")
        print(f"Location: {device.location or '-'}")
        print(f"User:     {args.user}")
        print(f"--------------------------------")

    except Exception as e:
        print(f"Error: {e}")
        session.rollback()
    finally:
        session.close()


if __name__ == "__main__":
    main()
