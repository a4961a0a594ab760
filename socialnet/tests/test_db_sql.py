import unittest

from socialnet.db import Comment, Experience, Like, PostRecord, SqlDbClient, UserRecord
from socialnet.services import delete_account


class SqlDbClientTests(unittest.TestCase):
    """
    Uses SQLite via SQLAlchemy URL for fast/local testing of the SQL client logic.
    """

    def setUp(self):
        self.db = SqlDbClient("sqlite+pysqlite:///:memory:")

    def test_add_and_find_user(self):
        user = self.db.users.add(UserRecord(name="A", email="a@b.io", password="hash"))
        self.assertEqual(self.db.users.get(user.id).email, "a@b.io")
        self.assertEqual(self.db.users.find_by_email("a@b.io").id, user.id)
        self.assertIsNone(self.db.users.find_by_email("missing@b.io"))
        self.assertTrue(self.db.users.delete(user.id))
        self.assertFalse(self.db.users.delete(user.id))

    def test_upsert_keeps_one_profile_per_user(self):
        first = self.db.profiles.upsert_for_user(
            "u1", {"username": "alice", "birthday": "1990-01-01", "skills": ["js"]}
        )
        second = self.db.profiles.upsert_for_user(
            "u1", {"username": "alice2", "birthday": "1990-01-01"}
        )
        self.assertEqual(first.id, second.id)
        self.assertEqual(second.skills, ["js"])
        self.assertEqual(len(self.db.profiles.list_all()), 1)
        self.assertEqual(self.db.profiles.find_by_username("alice2").id, first.id)
        self.assertIsNone(self.db.profiles.find_by_username("alice"))

    def test_profile_experience_round_trip(self):
        profile = self.db.profiles.upsert_for_user(
            "u1", {"username": "alice", "birthday": "1990-01-01"}
        )
        profile.experience.insert(0, Experience(title="driver", location="ny"))
        self.db.profiles.save(profile)

        loaded = self.db.profiles.get(profile.id)
        self.assertEqual(loaded.experience[0].title, "driver")
        self.assertEqual(loaded.social.facebook, None)
        self.assertTrue(self.db.profiles.delete_for_user("u1"))
        self.assertIsNone(self.db.profiles.find_by_user("u1"))

    def test_post_documents(self):
        post = PostRecord(profile="p1", text="hello", extra={"mood": "happy"})
        post.likes.insert(0, Like(profile="p2"))
        post.comments.insert(0, Comment(profile="p2", text="nice"))
        self.db.posts.add(post)
        self.db.posts.add(PostRecord(profile="p2", text="other"))

        loaded = self.db.posts.get(post.id)
        self.assertTrue(loaded.liked_by("p2"))
        self.assertEqual(loaded.comments[0].text, "nice")
        self.assertEqual(loaded.extra, {"mood": "happy"})
        self.assertEqual(loaded.find_comment(post.comments[0].id).profile, "p2")

        self.assertEqual(self.db.posts.delete_by_profile("p1"), 1)
        self.assertEqual([p.text for p in self.db.posts.list_all()], ["other"])

    def test_cascade_delete_on_shared_connection(self):
        # The three deletes run on separate threads against one SQLite connection.
        for i in range(50):
            user = self.db.users.add(
                UserRecord(name="A", email=f"a{i}@b.io", password="hash")
            )
            profile = self.db.profiles.upsert_for_user(
                user.id, {"username": f"a{i}", "birthday": "1990-01-01"}
            )
            for n in range(5):
                self.db.posts.add(PostRecord(profile=profile.id, text=f"post {n}"))

            results = delete_account(self.db, user.id, profile.id)

            self.assertEqual(results["posts"], 5)
            self.assertIsNone(self.db.users.get(user.id))
            self.assertIsNone(self.db.profiles.find_by_user(user.id))
        self.assertEqual(self.db.posts.list_all(), [])


if __name__ == "__main__":
    unittest.main()
