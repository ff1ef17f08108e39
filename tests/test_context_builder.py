"""Tests for reference context assembly."""

from datagen_agent.retrieval.context_builder import generate_semantic_hints
from datagen_agent.retrieval.profiling import extract_column_patterns
from datagen_agent.schemas import ReferenceContext


class TestReferenceContextBuilder:
    """Tests for ReferenceContextBuilder.build."""

    def test_empty_topic(self, make_builder, make_source):
        source = make_source("kaggle")
        context = make_builder([source]).build("   ")

        assert context.is_empty
        assert source.search_calls == []

    def test_no_sources(self, make_builder):
        assert make_builder([]).build("ecommerce").is_empty

    def test_sampled_candidate_comes_first(self, make_builder, make_source, make_candidate, make_sample, shop_rows):
        kaggle = make_source(
            "kaggle",
            [
                make_candidate("acme/ecommerce-products", name="Ecommerce Products", downloads=4000),
                make_candidate("acme/weather", name="Weather"),
            ],
            {"acme/weather": make_sample(shop_rows)},
        )

        context = make_builder([kaggle]).build("ecommerce products")

        assert kaggle.sample_calls == ["acme/ecommerce-products", "acme/weather"]
        assert [s.name for s in context.reference_sources] == ["Weather", "Ecommerce Products"]
        assert context.reference_sources[0].relevance_summary == "3 sample rows with 4 columns"
        assert context.reference_sources[1].relevance_summary == "4k+ downloads • highly relevant"
        assert context.reference_sources[1].relevance_score == 67.0

    def test_first_successful_sample_stops_sampling(
        self, make_builder, make_source, make_candidate, make_sample, shop_rows
    ):
        kaggle = make_source(
            "kaggle",
            [make_candidate("acme/a", name="shop a"), make_candidate("acme/b", name="shop b")],
            {"acme/a": make_sample(shop_rows), "acme/b": make_sample(shop_rows)},
        )
        hf = make_source(
            "huggingface",
            [make_candidate("org/c", source_type="huggingface", name="shop c")],
            {"org/c": make_sample(shop_rows)},
        )

        make_builder([kaggle, hf]).build("shop")

        assert kaggle.sample_calls == ["acme/a"]
        assert hf.sample_calls == []

    def test_falls_through_to_next_source_pool(
        self, make_builder, make_source, make_candidate, make_sample, shop_rows
    ):
        kaggle = make_source("kaggle", [make_candidate("acme/a", name="shop a")])
        hf = make_source(
            "huggingface",
            [make_candidate("org/c", source_type="huggingface", name="shop c")],
            {"org/c": make_sample(shop_rows)},
        )

        context = make_builder([kaggle, hf]).build("shop")

        assert [(s.source_type, s.name) for s in context.reference_sources] == [
            ("huggingface", "shop c"),
            ("kaggle", "shop a"),
        ]

    def test_priority_order_independent_of_latency(self, make_builder, make_source, make_candidate):
        slow = make_source("kaggle", [make_candidate("acme/a", name="shop a")], delay_sec=0.05)
        fast = make_source("huggingface", [make_candidate("org/b", source_type="huggingface", name="shop b")])

        context = make_builder([slow, fast], parallel_search=True).build("shop")

        assert [s.source_type for s in context.reference_sources] == ["kaggle", "huggingface"]
        assert slow.search_calls == ["shop"]
        assert fast.search_calls == ["shop"]

    def test_failed_source_is_skipped(self, make_builder, make_source, make_candidate):
        broken = make_source("kaggle", fail_search=True)
        hf = make_source("huggingface", [make_candidate("org/b", source_type="huggingface", name="shop b")])

        context = make_builder([broken, hf], parallel_search=True).build("shop")

        assert [s.name for s in context.reference_sources] == ["shop b"]
        assert context.column_patterns == {}

    def test_at_most_three_sources(self, make_builder, make_source, make_candidate):
        kaggle = make_source("kaggle", [make_candidate(f"acme/k{i}") for i in range(3)])
        hf = make_source("huggingface", [make_candidate(f"org/h{i}", source_type="huggingface") for i in range(3)])

        context = make_builder([kaggle, hf]).build("shop")

        assert [s.source_type for s in context.reference_sources] == ["kaggle"] * 3

    def test_noise_columns_filtered(self, make_builder, make_source, make_candidate, make_sample, shop_rows):
        kaggle = make_source("kaggle", [make_candidate("acme/a")], {"acme/a": make_sample(shop_rows)})

        context = make_builder([kaggle]).build("office supplies")

        assert list(context.column_patterns) == ["product_name", "price", "in_stock"]
        assert list(context.value_examples) == ["product_name", "price", "in_stock"]
        assert context.value_examples["price"].datatype == "float"
        assert context.value_examples["price"].examples == ["19.99", "149.50", "3.25"]

    def test_hints_from_topic_and_columns(self, make_builder, make_source, make_candidate, make_sample, shop_rows):
        kaggle = make_source("kaggle", [make_candidate("acme/a")], {"acme/a": make_sample(shop_rows)})

        context = make_builder([kaggle]).build("ecommerce products")

        assert context.semantic_hints == [
            "Include product identifiers, names, categories, and pricing",
            "Consider inventory levels, ratings, and reviews",
            "Use realistic price ranges for product categories",
            "Common columns in similar datasets: product_name, price, in_stock",
            "price: typical range 3.25 to 149.5",
        ]

    def test_context_is_cached_per_topic(self, make_builder, make_source, make_candidate):
        kaggle = make_source("kaggle", [make_candidate("acme/a", name="shop a")])
        builder = make_builder([kaggle])

        first = builder.build("Shop")
        second = builder.build("  shop ")

        assert second is first
        assert kaggle.search_calls == ["Shop"]

    def test_request_description_leaves_scores_unchanged(
        self, make_builder, make_source, make_candidate, cache
    ):
        candidates = [
            make_candidate("o/a", name="Store Data", description="quarterly revenue figures"),
            make_candidate("o/b", name="Store Data", description="monthly retail sales for stores"),
        ]

        plain = make_builder([make_source("kaggle", candidates)]).build("retail sales")
        cache.clear_all()
        described = make_builder([make_source("kaggle", candidates)]).build(
            "retail sales", "quarterly revenue figures"
        )

        expected = [("https://example.org/o/b", 15.0), ("https://example.org/o/a", 0.0)]
        assert [(s.url, s.relevance_score) for s in plain.reference_sources] == expected
        assert [(s.url, s.relevance_score) for s in described.reference_sources] == expected

    def test_empty_context_is_not_cached(self, make_builder, make_source, cache):
        kaggle = make_source("kaggle")
        builder = make_builder([kaggle])

        builder.build("shop")
        builder.build("shop")

        assert kaggle.search_calls == ["shop", "shop"]
        assert cache.stats()["search"]["keys"] == 0

    def test_sample_cache_reused_across_topics(
        self, make_builder, make_source, make_candidate, make_sample, shop_rows
    ):
        kaggle = make_source("kaggle", [make_candidate("acme/a")], {"acme/a": make_sample(shop_rows)})
        builder = make_builder([kaggle])

        builder.build("shop")
        builder.build("store")

        assert kaggle.sample_calls == ["acme/a"]

    def test_cached_context_expires(self, make_builder, make_source, make_candidate, fake_clock):
        kaggle = make_source("kaggle", [make_candidate("acme/a")])
        builder = make_builder([kaggle])

        builder.build("shop")
        fake_clock.advance(3601)
        builder.build("shop")

        assert len(kaggle.search_calls) == 2

    def test_build_never_raises(self, make_builder, make_source, cache, monkeypatch):
        def boom(topic):
            raise RuntimeError("cache offline")

        monkeypatch.setattr(cache, "get_search_context", boom)
        context = make_builder([make_source("kaggle")]).build("shop")

        assert context == ReferenceContext()


class TestSemanticHints:
    """Tests for generate_semantic_hints."""

    def test_no_matches(self):
        assert generate_semantic_hints("weather", None, {}) == []

    def test_capped_at_ten(self):
        hints = generate_semantic_hints("social user sales shop", None, {})
        assert len(hints) == 10
        assert hints[0] == "Include product identifiers, names, categories, and pricing"

    def test_columns_hint_lists_first_five(self):
        rows = [{f"c{i}": "x" for i in range(7)}]
        hints = generate_semantic_hints("weather", None, extract_column_patterns(rows))
        assert hints == ["Common columns in similar datasets: c0, c1, c2, c3, c4"]

    def test_description_does_not_select_groups(self):
        assert generate_semantic_hints("weather", "ecommerce shop orders", {}) == []
