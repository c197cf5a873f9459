from __future__ import annotations

import unittest
from decimal import Decimal
from types import SimpleNamespace

from menswear_ops.services.definitions_service import Definitions, DefinitionsCache
from menswear_ops.services.sort_utils import size_sort_key
from menswear_ops.services.variant_generation_service import (
    generate_accessory_variants,
    generate_shirt_variants,
    generate_suit_variants,
)


def _size(size_id: int, code: str, category: str = 'suits', sort_order: int = 0) -> SimpleNamespace:
    return SimpleNamespace(id=size_id, size_code=code, category=category, sort_order=sort_order)


class VariantGenerationTests(unittest.TestCase):
    def test_suits_cover_every_color_piece_and_size(self) -> None:
        specs = generate_suit_variants(
            sizes=[_size(1, '38R'), _size(2, '40R')],
            color_ids=[4],
            piece_types=['2-piece', '3-piece'],
            base_price=Decimal('299.99'),
        )
        self.assertEqual(
            [spec.sku for spec in specs],
            ['SUIT-4-38R-2-PIECE', 'SUIT-4-40R-2-PIECE', 'SUIT-4-38R-3-PIECE', 'SUIT-4-40R-3-PIECE'],
        )
        self.assertEqual({spec.price for spec in specs if spec.piece_type == '3-piece'}, {Decimal('349.99')})
        self.assertTrue(all(spec.low_stock_threshold == 5 and spec.stock_quantity == 0 for spec in specs))

    def test_shirts_use_fit_in_sku(self) -> None:
        specs = generate_shirt_variants(
            sizes=[_size(7, '15.5', 'shirts')], color_ids=[2, 3], fit_type='slim', base_price=Decimal('79')
        )
        self.assertEqual([spec.sku for spec in specs], ['SHIRT-SLIM-2-15.5', 'SHIRT-SLIM-3-15.5'])
        self.assertEqual(specs[0].low_stock_threshold, 3)

    def test_accessories_have_no_size(self) -> None:
        [spec] = generate_accessory_variants(color_ids=[6], base_price=Decimal('25'), sku_prefix='TIE')
        self.assertEqual(spec.sku, 'TIE-6')
        self.assertIsNone(spec.size_id)

    def test_missing_required_fields(self) -> None:
        with self.assertRaises(ValueError):
            generate_suit_variants(sizes=[], color_ids=[1], piece_types=[], base_price=Decimal('1'))
        with self.assertRaises(ValueError):
            generate_shirt_variants(sizes=[], color_ids=[], fit_type='slim', base_price=Decimal('1'))


class DefinitionsTests(unittest.TestCase):
    def test_sizes_sorted_by_sort_order_then_code(self) -> None:
        definitions = Definitions(
            sizes=[
                _size(1, 'L', 'shirts'),
                _size(2, '42R'),
                _size(3, '38R'),
                _size(4, '40L', sort_order=-1),
            ]
        )
        self.assertEqual([size.size_code for size in definitions.sizes_for('suits')], ['40L', '38R', '42R'])

    def test_letter_sizes_after_numeric(self) -> None:
        codes = ['XL', 'M', '16', 'S', 'One Size', '15.5']
        self.assertEqual(sorted(codes, key=size_sort_key), ['15.5', '16', 'S', 'M', 'XL', 'One Size'])

    def test_cache_loads_once_until_invalidated(self) -> None:
        cache = DefinitionsCache()
        calls = []

        def loader():
            calls.append(1)
            return Definitions()

        cache.get(loader)
        cache.get(loader)
        self.assertEqual(cache.loads, 1)
        cache.invalidate()
        cache.get(loader)
        self.assertEqual(len(calls), 2)


if __name__ == '__main__':
    unittest.main()
