# scripts/seed_demo.py
"""Seed one lost dog and one matching found report, then run a single scan."""
import asyncio

from petmatch import deps
from petmatch.core.logs import configure_logging


async def main():
    configure_logging("INFO")
    repo = deps.get_repo()

    owner = await repo.create_user("owner@example.com", name="Owner", fcm_token="demo-device-token")
    finder = await repo.create_user("finder@example.com", name="Finder")

    lost_pet = await repo.create_pet({
        "owner_id": str(owner["_id"]),
        "name": "Buddy",
        "species": "dog",
        "breed": "Labrador Retriever",
        "age": "3",
        "fur_color": "golden",
        "location": {"coordinates": [34.78, 32.09]},   # [lng, lat]
    })
    seen_pet = await repo.create_pet({
        "owner_id": str(finder["_id"]),
        "name": "Unknown",
        "species": "dog",
        "breed": "Labrador",
        "age": "3 years",
        "fur_color": "golden",
        "location": {"coordinates": [34.781, 32.091]},
    })

    lost = await repo.create_report({"pet_id": lost_pet["id"], "reporter_id": str(owner["_id"]), "status": "lost"})
    await repo.create_report({
        "pet_id": seen_pet["id"],
        "reporter_id": str(finder["_id"]),
        "status": "found",
        "phone_numbers": ["+972-50-000-0000"],
    })

    scanner = deps.get_scanner()
    await scanner.scan()
    print("Seeded lost report", lost["id"], "->", scanner.last_stats.as_dict())
    print("Matches:", await repo.list_matches(lost["id"]))


if __name__ == "__main__":
    asyncio.run(main())
