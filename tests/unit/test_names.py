"""Tests for synthetic patient names and e-mail addresses."""

import random

from loadgen.utils.names import EMAIL_DOMAINS, FIRST_NAMES, LAST_NAMES, random_email, random_name


class TestRandomEmail:
    def test_address_shape(self):
        rng = random.Random(5)
        for _ in range(100):
            first, last = random_name(rng)
            assert first in FIRST_NAMES
            assert last in LAST_NAMES
            local, domain = random_email(first, last, rng).split("@")
            assert domain in EMAIL_DOMAINS
            assert local == local.lower()
            assert " " not in local and "'" not in local

    def test_punctuation_is_stripped_from_names(self):
        rng = random.Random(1)
        emails = {random_email("Liam", "O'Brien", rng) for _ in range(50)}
        assert all("obrien" in email for email in emails)

    def test_seeded_addresses_repeat(self):
        first = [random_email("Nina", "Van der Berg", random.Random(9)) for _ in range(3)]
        assert len(set(first)) == 1
