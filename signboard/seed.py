from signboard.db import SessionLocal, init_db
from signboard.services.store import DocumentStore

DEMO_USER_ID = "demo-user"
ALL_DAYS = [0, 1, 2, 3, 4, 5, 6]


def seed(store: DocumentStore | None = None) -> dict[str, str]:
    init_db()
    store = store or DocumentStore(SessionLocal)

    if store.get("users", DEMO_USER_ID) is None:
        store.create("users", {"id": DEMO_USER_ID, "display_name": "Demo", "email": "demo@example.com"})

    media_ids = [
        store.create(
            "media_items",
            {
                "title": "Welcome Slide",
                "type": "image",
                "url": "https://picsum.photos/seed/welcome/1920/1080",
                "duration": 8,
                "user_id": DEMO_USER_ID,
            },
        ),
        store.create(
            "media_items",
            {
                "title": "Menu Board",
                "type": "image",
                "url": "https://picsum.photos/seed/menu/1920/1080",
                "duration": 5,
                "user_id": DEMO_USER_ID,
            },
        ),
        store.create(
            "media_items",
            {
                "title": "Promo Loop",
                "type": "video",
                "url": "https://interactive-examples.mdn.mozilla.net/media/cc0-videos/flower.mp4",
                "user_id": DEMO_USER_ID,
            },
        ),
    ]

    daytime_id = store.create(
        "playlists",
        {"name": "Daytime", "media_item_ids": media_ids, "user_id": DEMO_USER_ID},
    )
    evening_id = store.create(
        "playlists",
        {"name": "Evening", "media_item_ids": media_ids[:1], "user_id": DEMO_USER_ID},
    )

    screen_id = store.create(
        "screens",
        {
            "name": "Lobby TV",
            "assignments": [
                {"playlist_id": daytime_id, "day_of_week": ALL_DAYS, "start_time": "08:00", "end_time": "18:00"},
                {"playlist_id": evening_id, "day_of_week": ALL_DAYS, "start_time": "18:00", "end_time": "23:59"},
            ],
            "user_id": DEMO_USER_ID,
        },
    )
    return {"user_id": DEMO_USER_ID, "screen_id": screen_id, "playlist_id": daytime_id}


if __name__ == "__main__":
    created = seed()
    print(f"Seeded screen {created['screen_id']} -> /display/{created['screen_id']}")
