import unittest

from cot_consensus.parsing import normalize_answer
from cot_consensus.voting import VotingResult, select_by_majority_vote


class MajorityVoteTests(unittest.TestCase):
    def test_majority_with_distribution(self) -> None:
        result = select_by_majority_vote(["28", "28", "28", "27", "28"])
        self.assertEqual(result.winning_answer, "28")
        self.assertEqual(result.vote_count, 4)
        self.assertEqual(result.total_samples, 5)
        self.assertEqual(result.distribution, {"28": 4, "27": 1})
        self.assertAlmostEqual(result.consensus_percentage, 80.0)

    def test_unanimous_long_answer_wins(self) -> None:
        answer = normalize_answer("1234567890123456789012345")
        result = select_by_majority_vote([answer] * 3)
        self.assertEqual(result.winning_answer, "1234567890123456789012345")
        self.assertAlmostEqual(result.consensus_percentage, 100.0)

    def test_unanimous_is_full_consensus(self) -> None:
        result = select_by_majority_vote(["12", "12", "12"])
        self.assertEqual(result.winning_answer, "12")
        self.assertAlmostEqual(result.consensus_percentage, 100.0)

    def test_tie_goes_to_first_answer_reaching_max(self) -> None:
        result = select_by_majority_vote(["7", "9", "7", "9"])
        self.assertEqual(result.winning_answer, "7")
        self.assertEqual(result.vote_count, 2)

    def test_later_answer_needs_strictly_more_votes(self) -> None:
        result = select_by_majority_vote(["9", "7", "7", "9", "9"])
        self.assertEqual(result.winning_answer, "9")
        self.assertEqual(result.vote_count, 3)

    def test_none_entries_count_in_total_only(self) -> None:
        result = select_by_majority_vote([None, "5", None, "5"])
        self.assertEqual(result.winning_answer, "5")
        self.assertEqual(result.vote_count, 2)
        self.assertEqual(result.total_samples, 4)
        self.assertEqual(result.distribution, {"5": 2})
        self.assertLessEqual(sum(result.distribution.values()), result.total_samples)
        self.assertAlmostEqual(result.consensus_percentage, 50.0)

    def test_all_answerless(self) -> None:
        result = select_by_majority_vote([None, None, None])
        self.assertIsNone(result.winning_answer)
        self.assertEqual(result.vote_count, 0)
        self.assertEqual(result.total_samples, 3)
        self.assertEqual(result.distribution, {})
        self.assertEqual(result.consensus_percentage, 0.0)

    def test_empty_input(self) -> None:
        result = select_by_majority_vote([])
        self.assertIsNone(result.winning_answer)
        self.assertEqual(result.total_samples, 0)
        self.assertEqual(result.consensus_percentage, 0.0)

    def test_top_votes_keeps_discovery_order_on_ties(self) -> None:
        result = select_by_majority_vote(["3", "1", "2", "1", "2"])
        self.assertEqual(result.top_votes(), [("1", 2), ("2", 2), ("3", 1)])
        self.assertEqual(result.top_votes(1), [("1", 2)])

    def test_as_dict(self) -> None:
        result = VotingResult(winning_answer="4", vote_count=1, total_samples=2, distribution={"4": 1})
        payload = result.as_dict()
        self.assertEqual(payload["consensus_percentage"], 50.0)
        self.assertEqual(payload["distribution"], {"4": 1})


if __name__ == "__main__":
    unittest.main()
