"""
Unit tests for the slide interval calculation (core.duration).
"""
import unittest

from core.duration import (
    ADJUSTED_NOTICE,
    MINIMUM_NOTICE,
    NO_CHANGE,
    compute_adjustment,
    visual_duration,
)


class TestComputeAdjustment(unittest.TestCase):
    def test_song_long_enough_keeps_interval(self):
        result = compute_adjustment(5, [], 60, 5)
        self.assertEqual(result, NO_CHANGE)
        self.assertIsNone(result.notice)

    def test_exact_fit_keeps_interval(self):
        self.assertEqual(compute_adjustment(4, [10], 30, 5), NO_CHANGE)

    def test_shortens_interval_to_fit_song(self):
        result = compute_adjustment(10, [], 20, 5)
        self.assertEqual(result.new_interval, 2)
        self.assertEqual(result.notice, "Slide speed automatically adjusted to 2s to match song length.")
        self.assertTrue(result.changed)

    def test_interval_rounds_down(self):
        # 29 / 4 = 7.25
        result = compute_adjustment(4, [], 29, 10)
        self.assertEqual(result.new_interval, 7)

    def test_video_time_is_taken_from_the_song_first(self):
        # 40 - 25 = 15 seconds for 5 images
        result = compute_adjustment(5, [25], 40, 5)
        self.assertEqual(result.new_interval, 3)
        self.assertEqual(result.notice, ADJUSTED_NOTICE.format(interval=3))

    def test_song_shorter_than_video_clamps_to_minimum(self):
        result = compute_adjustment(5, [25], 20, 5)
        self.assertEqual(result.new_interval, 1)
        self.assertEqual(result.notice, "Song is shorter than video content. Slide speed set to minimum (1s).")
        self.assertEqual(result.notice, MINIMUM_NOTICE)

    def test_song_shorter_than_video_at_minimum_is_no_change(self):
        self.assertEqual(compute_adjustment(5, [25], 20, 1), NO_CHANGE)

    def test_song_equal_to_video_clamps_to_minimum(self):
        result = compute_adjustment(3, [20], 20, 5)
        self.assertEqual(result.new_interval, 1)
        self.assertEqual(result.notice, MINIMUM_NOTICE)

    def test_never_below_one_second(self):
        # 10 seconds for 30 images would be 0.33s each
        result = compute_adjustment(30, [], 10, 5)
        self.assertEqual(result.new_interval, 1)

    def test_floor_already_reached_is_no_change(self):
        self.assertEqual(compute_adjustment(30, [], 10, 1), NO_CHANGE)

    def test_without_audio_nothing_changes(self):
        self.assertEqual(compute_adjustment(10, [], None, 5), NO_CHANGE)

    def test_without_images_nothing_changes(self):
        self.assertEqual(compute_adjustment(0, [25], 5, 5), NO_CHANGE)

    def test_result_is_never_below_one(self):
        for images in (1, 2, 7, 30):
            for videos in ([], [5.5], [29.9]):
                for audio in (0.5, 3, 17.2, 60, 240):
                    for interval in (1, 5, 10, 15, 20):
                        result = compute_adjustment(images, videos, audio, interval)
                        if result.changed:
                            self.assertGreaterEqual(result.new_interval, 1)

    def test_applying_the_result_again_is_stable(self):
        for images, videos, audio, interval in [
            (10, [], 20, 5),
            (5, [25], 40, 5),
            (5, [25], 20, 5),
            (30, [], 10, 20),
            (7, [12.5], 61.3, 15),
        ]:
            first = compute_adjustment(images, videos, audio, interval)
            self.assertTrue(first.changed)
            second = compute_adjustment(images, videos, audio, first.new_interval)
            self.assertEqual(second, NO_CHANGE, (images, videos, audio, interval))


class TestVisualDuration(unittest.TestCase):
    def test_sum_of_images_and_videos(self):
        self.assertEqual(visual_duration(3, [4.5, 2], 5), 21.5)

    def test_empty(self):
        self.assertEqual(visual_duration(0, [], 5), 0)


if __name__ == "__main__":
    unittest.main()
