"""
Defines tests for stock aggregation, stacking and flow curves.
"""
import pytest
import numpy as np
import pandas as pd

from pysankey.layout import (Flow, Stock, InvalidOrderingError,
                             NegativeValueError, FlowReusedError,
                             aggregate_stocks, stock_list, layout_stocks,
                             data_range, spline)


def _apple_flows():
    # (cat0, "Large") -> (cat1, "Mohamed") = 5, etc.
    return [Flow(0, 'Large', 1, 'Mohamed', 5),
            Flow(0, 'Small', 1, 'Mohamed', 2),
            Flow(0, 'Large', 1, 'Sofia', 3)]


def _column(stocks, category):
    return [(s.label, s.order) for s in stock_list(stocks)
            if s.category == category]


class TestAggregation:
    """Testsuite for grouping flows into stocks."""
    def test_stock_totals(self):
        stocks, records = aggregate_stocks(_apple_flows())
        assert stocks[0]['Large'].source_value == 8
        assert stocks[0]['Small'].source_value == 2
        assert stocks[1]['Mohamed'].receptor_value == 7
        assert stocks[1]['Sofia'].receptor_value == 3
        # nothing leaves the last category, nothing enters the first
        assert stocks[1]['Mohamed'].source_value == 0
        assert stocks[0]['Large'].receptor_value == 0
        assert len(records) == 3

    def test_first_seen_order(self):
        stocks, _ = aggregate_stocks(_apple_flows())
        assert _column(stocks, 0) == [('Large', 0), ('Small', 1)]
        assert _column(stocks, 1) == [('Mohamed', 0), ('Sofia', 1)]

    def test_categories_from_flows(self):
        flows = [Flow(0, 'a', 2, 'b', 1), Flow(2, 'b', 5, 'c', 1)]
        stocks, _ = aggregate_stocks(flows)
        assert sorted(stocks) == [0, 2, 5]

    def test_order_shared_by_sources_and_receptors(self):
        # a category acting as receptor and as source counts both
        flows = [Flow(0, 'a', 1, 'x', 1), Flow(1, 'y', 2, 'z', 1),
                 Flow(0, 'b', 1, 'y', 1)]
        stocks, _ = aggregate_stocks(flows)
        assert _column(stocks, 1) == [('x', 0), ('y', 1)]

    @pytest.mark.parametrize('source_cat, receptor_cat', [(1, 1), (2, 1)],
                             ids=['same-category', 'reversed-categories'])
    def test_invalid_ordering(self, source_cat, receptor_cat):
        flows = [Flow(0, 'a', 1, 'b', 1),
                 Flow(source_cat, 'c', receptor_cat, 'd', 1)]
        with pytest.raises(InvalidOrderingError, match='Flow 1') as err:
            aggregate_stocks(flows)
        assert err.value.index == 1
        assert isinstance(err.value, ValueError)
        # no flow was claimed by the failed attempt
        assert not flows[0].in_use

    @pytest.mark.parametrize('value', [-0.5, -np.inf, float('nan')],
                             ids=['negative', 'negative-inf', 'nan'])
    def test_negative_value(self, value):
        flows = [Flow(0, 'a', 1, 'b', value)]
        with pytest.raises(NegativeValueError, match='Flow 0') as err:
            aggregate_stocks(flows)
        assert err.value.index == 0

    def test_zero_value_accepted(self):
        stocks, _ = aggregate_stocks([Flow(0, 'a', 1, 'b', 0)])
        assert stocks[1]['b'].receptor_value == 0

    def test_flow_reuse(self):
        flows = _apple_flows()
        aggregate_stocks(flows)
        assert all(f.in_use for f in flows)
        with pytest.raises(FlowReusedError):
            aggregate_stocks(flows[1:])

    def test_flow_twice_in_one_diagram(self):
        flow = Flow(0, 'a', 1, 'b', 1)
        with pytest.raises(FlowReusedError):
            aggregate_stocks([flow, flow])
        assert not flow.in_use

    def test_failed_diagram_releases_flows(self):
        good = Flow(0, 'a', 1, 'b', 1)
        with pytest.raises(NegativeValueError):
            aggregate_stocks([good, Flow(0, 'a', 1, 'c', -1)])
        stocks, _ = aggregate_stocks([good])
        assert stocks[1]['b'].receptor_value == 1

    def test_group_defaults_per_flow(self):
        flows = [Flow(0, 'a', 1, 'r', 1, group='Apples'),
                 Flow(0, 'b', 1, 'r', 1),
                 Flow(0, 'c', 1, 'r', 1, group='')]
        _, records = aggregate_stocks(flows)
        assert [r.group for r in records] == ['Apples', 'Default', 'Default']
        # the flows passed in are left as they are
        assert flows[2].group == ''
        assert records[1] is not flows[1]

    def test_category_type(self):
        with pytest.raises(TypeError, match='source_category'):
            Flow(0.5, 'a', 1, 'b', 1)


records = [(0, 'Large', 1, 'Mohamed', 5),
           (0, 'Small', 1, 'Mohamed', 2, 'Dates'),
           (0, 'Large', 1, 'Sofia', 3)]
test_data = [
    (records, ['Default', 'Dates', 'Default']),
    (pd.DataFrame([r[:5] + ('Apples',) for r in records],
                  columns=['scat', 'slabel', 'rcat', 'rlabel', 'value',
                           'group']),
     ['Apples', 'Apples', 'Apples']),
]
test_ids = ['records-list', 'records-df']


@pytest.mark.parametrize('records, groups', test_data, ids=test_ids)
def test_flows_from_records(records, groups):
    flows = Flow.from_records(records)
    stocks, _records = aggregate_stocks(flows)
    assert stocks[0]['Large'].source_value == 8
    assert stocks[1]['Mohamed'].receptor_value == 7
    assert [r.group for r in _records] == groups


def test_malformed_record():
    with pytest.raises(ValueError, match='Record 0'):
        Flow.from_records([(0, 'a', 1)])


class TestLayout:
    """Testsuite for the vertical stacking of stocks."""
    def test_stacking(self):
        stocks, _ = aggregate_stocks(_apple_flows())
        ordered = layout_stocks(stock_list(stocks))
        extents = [(s.label, s.min, s.max) for s in ordered]
        assert extents == [('Large', 0, 8), ('Small', 8, 10),
                           ('Mohamed', 0, 7), ('Sofia', 7, 10)]

    def test_extent_matches_larger_total(self):
        flows = [Flow(0, 'A', 1, 'S', 3), Flow(1, 'S', 2, 'B', 3.5),
                 Flow(0, 'A', 1, 'T', 2), Flow(1, 'T', 2, 'B', 1)]
        stocks, _ = aggregate_stocks(flows)
        ordered = layout_stocks(stock_list(stocks))
        previous = None
        for stock in ordered:
            assert stock.max - stock.min == \
                max(stock.source_value, stock.receptor_value)
            if previous is None or previous.category != stock.category:
                assert stock.min == 0
            else:
                assert stock.min == previous.max
            previous = stock
        sofia = stocks[1]['S']
        assert sofia.max == sofia.min + 3.5

    def test_stockpad(self):
        stocks, _ = aggregate_stocks(_apple_flows())
        ordered = layout_stocks(stock_list(stocks), stockpad=0.5)
        assert [(s.min, s.max) for s in ordered] == [(0, 8), (8.5, 10.5),
                                                     (0, 7), (7.5, 10.5)]

    def test_layout_resets_placeholders(self):
        stocks, _ = aggregate_stocks(_apple_flows())
        ordered = stock_list(stocks)
        for stock in ordered:
            stock.source_placeholder = 1.
            stock.receptor_placeholder = 2.
        layout_stocks(ordered)
        first = [(s.min, s.max) for s in ordered]
        layout_stocks(ordered)
        assert [(s.min, s.max) for s in ordered] == first
        assert all(s.source_placeholder == 0 and s.receptor_placeholder == 0
                   for s in ordered)

    def test_unsortable_stocks(self):
        stocks = {0: {'a': Stock(0, 'a', 0), 'b': Stock(0, 'b', 0)}}
        with pytest.raises(RuntimeError, match="can't sort stocks"):
            stock_list(stocks)

    def test_data_range(self):
        stocks, _ = aggregate_stocks(_apple_flows())
        assert data_range(stocks) == (0, 1, 0, 10)
        assert data_range(stocks, stockpad=1) == (0, 1, 0, 11)

    def test_data_range_without_layout(self):
        stocks, _ = aggregate_stocks(_apple_flows())
        layout_stocks(stock_list(stocks), stockpad=1)
        stocks[1]['Sofia'].receptor_placeholder = 3.
        # the current extents are used and the placeholders stay
        assert data_range(stocks, layout=False) == (0, 1, 0, 11)
        assert stocks[1]['Sofia'].receptor_placeholder == 3

    def test_empty_data_range(self):
        stocks, _ = aggregate_stocks([])
        assert data_range(stocks) == (np.inf, -np.inf, np.inf, -np.inf)


class TestSpline:
    """Testsuite for the flow curves."""
    def test_end_points(self):
        pts = spline((0, 0), (10, 5), bar_width=10)
        assert pts.shape == (20, 2)
        np.testing.assert_allclose(pts[0], (0, 0), atol=1e-12)
        np.testing.assert_allclose(pts[-1], (10, 5), atol=1e-12)
        np.testing.assert_allclose(pts[:, 0], np.linspace(0, 10, 20))

    def test_deterministic(self):
        first = spline((3, 1), (40, -2), bar_width=12)
        second = spline((3, 1), (40, -2), bar_width=12)
        assert np.array_equal(first, second)

    def test_point_symmetric_s_curve(self):
        pts = spline((0, 0), (10, 5), bar_width=10, npoints=21)
        assert pts[10, 1] == pytest.approx(2.5)
        np.testing.assert_allclose(pts[:, 1] + pts[::-1, 1], 5)

    def test_reverse_direction(self):
        forward = spline((0, 0), (10, 5), bar_width=10)
        backward = spline((10, 5), (0, 0), bar_width=10)
        np.testing.assert_allclose(backward, forward[::-1], atol=1e-12)

    def test_npoints(self):
        assert spline((0, 0), (1, 1), bar_width=1, npoints=7).shape == (7, 2)

    def test_narrow_gap(self):
        # offsets larger than the gap must not break the interpolation
        pts = spline((0, 0), (1, 1), bar_width=100)
        assert np.all(np.isfinite(pts))
        np.testing.assert_allclose(pts[-1], (1, 1), atol=1e-12)

    def test_vertical(self):
        pts = spline((2, 0), (2, 3), bar_width=1)
        np.testing.assert_allclose(pts[:, 0], 2)
        np.testing.assert_allclose(pts[:, 1], np.linspace(0, 3, 20))
