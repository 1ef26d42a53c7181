from bson import ObjectId

from database import ORDERS
from offline import OfflineQueue
from tests.failing import FailingWrites


def test_enqueue_persists_to_disk(tmp_path):
    path = str(tmp_path / "queue.json")
    queue = OfflineQueue(path)
    queue.enqueue(ORDERS, "abc", {"status": "shipped"}, {"statusHistory": {"status": "shipped"}})

    reloaded = OfflineQueue(path)
    assert len(reloaded) == 1
    write = reloaded.pending()[0]
    assert write["collection"] == ORDERS
    assert write["set"] == {"status": "shipped"}


def test_replay_applies_in_order(mongo):
    oid = mongo[ORDERS].insert_one({"status": "pending", "statusHistory": []}).inserted_id
    queue = OfflineQueue()
    queue.enqueue(ORDERS, str(oid), {"status": "confirmed"}, {"statusHistory": {"status": "confirmed"}})
    queue.enqueue(ORDERS, str(oid), {"status": "shipped"}, {"statusHistory": {"status": "shipped"}})

    assert queue.replay(mongo) == {"applied": 2, "remaining": 0}
    doc = mongo[ORDERS].find_one({"_id": oid})
    assert doc["status"] == "shipped"
    assert [h["status"] for h in doc["statusHistory"]] == ["confirmed", "shipped"]


def test_replay_stops_on_store_failure(mongo):
    queue = OfflineQueue()
    queue.enqueue(ORDERS, str(ObjectId()), {"status": "shipped"})
    assert queue.replay(FailingWrites(mongo)) == {"applied": 0, "remaining": 1}
    assert len(queue) == 1
