"""
Stock aggregation, vertical layout and flow curves of a Sankey diagram.

Nothing in here draws anything: the functions take flows and stocks and
return numbers. :mod:`pysankey.plotting` turns the numbers into artists.
"""
import logging
import operator
from copy import copy

import numpy as np
from scipy.interpolate import CubicSpline

_log = logging.getLogger(__name__)

DEFAULT_GROUP = 'Default'


class SankeyError(ValueError):
    """Base class for flow data rejected when creating a diagram."""

    def __init__(self, msg, index=None):
        super().__init__(msg)
        self.index = index


class InvalidOrderingError(SankeyError):
    """A flow does not lead to a later category."""


class NegativeValueError(SankeyError):
    """A flow has a negative value."""


class FlowReusedError(RuntimeError):
    """A `Flow` was passed to more than one diagram."""


class UnknownGroupStyleError(LookupError):
    """A group style resolver got a group it has no style for."""


def _to_category(category, attribute):
    try:
        return operator.index(category)
    except TypeError:
        raise TypeError(f"'{attribute}' must be an integer, '{category!r}' of"
                        f" type '{type(category).__name__}' is not"
                        " supported.") from None


class Flow:
    """
    The amount of an entity flowing between two stocks.

    A flow is consumed by the diagram it is passed to. Passing the same
    `Flow` to a second diagram raises a `FlowReusedError`.
    """

    def __init__(self, source_category, source_label, receptor_category,
                 receptor_label, value, group=None):
        """
        Parameters
        ----------
        source_category : int
            Location on the category axis of the stock the flow originates
            from. Must be lower than *receptor_category*.
        source_label : str
            Label of the stock the flow originates from.
        receptor_category : int
            Location on the category axis of the stock receiving the flow.
        receptor_label : str
            Label of the stock receiving the flow.
        value : float
            Magnitude of the flow, must be greater than or equal to zero.
        group : str, optional
            The group the flow belongs to. Groups are used to style flows and
            to build legends. A blank group is replaced by ``'Default'``.
        """
        self.source_category = _to_category(source_category,
                                            'source_category')
        self.source_label = source_label
        self.receptor_category = _to_category(receptor_category,
                                              'receptor_category')
        self.receptor_label = receptor_label
        self.value = float(value)
        self.group = group
        self._in_use = False

    def __repr__(self):
        return (f"{type(self).__name__}({self.source_category!r},"
                f" {self.source_label!r}, {self.receptor_category!r},"
                f" {self.receptor_label!r}, {self.value!r},"
                f" group={self.group!r})")

    @property
    def in_use(self):
        """Indicate whether a diagram has already consumed this flow."""
        return self._in_use

    @classmethod
    def from_records(cls, records):
        """
        Create flows from a table of records.

        Parameters
        ----------
        records : sequence of sequences or DataFrame
            Each row holds ``(source_category, source_label,
            receptor_category, receptor_label, value)`` and optionally the
            group as sixth entry. Objects with ``index`` and ``values``
            attributes (e.g. a `pandas.DataFrame`) are read row by row from
            ``values``.

        Returns
        -------
        list of `Flow`
        """
        if hasattr(records, 'index') and hasattr(records, 'values'):
            records = records.values
        flows = []
        for i, record in enumerate(records):
            if len(record) not in (5, 6):
                raise ValueError(f"Record {i} must have 5 or 6 entries, got"
                                 f" {len(record)}:\n{record}")
            flows.append(cls(*record))
        return flows


class Stock:
    """
    The amount of a stock, its stacking order and its vertical extent.

    ``min`` and ``max`` are set by `layout_stocks`, the placeholders track how
    much of the stock has been claimed by flows during a rendering pass.
    """

    def __init__(self, category, label, order):
        self.category = category
        self.label = label
        self.order = order
        self.source_value = 0.
        self.receptor_value = 0.
        self.min = 0.
        self.max = 0.
        self.source_placeholder = 0.
        self.receptor_placeholder = 0.

    def __repr__(self):
        return (f"{type(self).__name__}(category={self.category!r},"
                f" label={self.label!r}, order={self.order},"
                f" source_value={self.source_value},"
                f" receptor_value={self.receptor_value},"
                f" min={self.min}, max={self.max})")

    def get_height(self):
        """Return the larger of the in- and outgoing totals."""
        return max(self.source_value, self.receptor_value)


def _validate_flows(flows):
    """Check all flows before any of them is claimed."""
    seen = set()
    for i, flow in enumerate(flows):
        if flow.source_category >= flow.receptor_category:
            raise InvalidOrderingError(
                f"Flow {i} source_category ({flow.source_category}) >="
                f" receptor_category ({flow.receptor_category})", index=i
            )
        # NaN fails the comparison as well
        if not flow.value >= 0:
            raise NegativeValueError(f"Flow {i} value ({flow.value:g}) is not"
                                     " >= 0", index=i)
        if flow.in_use or id(flow) in seen:
            raise FlowReusedError(f"Flow {i} is already in use in another"
                                  f" diagram: {flow!r}")
        seen.add(id(flow))


def aggregate_stocks(flows):
    """
    Group flows into stocks and accumulate the stock totals.

    Parameters
    ----------
    flows : sequence of `Flow`
        The flows of a diagram. Each flow is claimed by this call.

    Returns
    -------
    stocks : dict
        ``{category: {label: Stock}}``.
    records : list of `Flow`
        Private copies of *flows*, in input order and with the group
        defaulted.
    """
    flows = list(flows)
    _validate_flows(flows)

    stocks = {}
    records = []
    for flow in flows:
        flow._in_use = True
        record = copy(flow)
        if not record.group:
            record.group = DEFAULT_GROUP
        records.append(record)

        for cat, label in ((flow.source_category, flow.source_label),
                           (flow.receptor_category, flow.receptor_label)):
            column = stocks.setdefault(cat, {})
            if label not in column:
                # first seen, first stacked
                column[label] = Stock(cat, label, order=len(column))

        stocks[flow.source_category][flow.source_label].source_value += \
            flow.value
        stocks[flow.receptor_category][flow.receptor_label].receptor_value += \
            flow.value
    _log.debug(f"Aggregated {len(records)} flows into"
               f" {sum(len(c) for c in stocks.values())} stocks in"
               f" {len(stocks)} categories.")
    return stocks, records


def stock_list(stocks):
    """Return all stocks sorted by category and then by stacking order."""
    ordered = sorted((stock for column in stocks.values()
                      for stock in column.values()),
                     key=lambda s: (s.category, s.order))
    for prev, stock in zip(ordered, ordered[1:]):
        if (prev.category, prev.order) == (stock.category, stock.order):
            raise RuntimeError(f"can't sort stocks:\n{prev!r}\n{stock!r}")
    return ordered


def layout_stocks(ordered, stockpad=0.):
    """
    Stack the stocks of each category on top of each other.

    Parameters
    ----------
    ordered : sequence of `Stock`
        Stocks as returned by `stock_list`.
    stockpad : float, default: 0
        Vertical space between two stocks of the same category.

    Every stock gets ``min``/``max`` set in place, its placeholders are reset
    to zero. Calling this repeatedly yields the same layout.
    """
    cat = None
    cursor = 0.
    for stock in ordered:
        stock.source_placeholder = 0.
        stock.receptor_placeholder = 0.
        if stock.category != cat:
            cursor = 0.
        cat = stock.category
        stock.min = cursor
        stock.max = stock.min + stock.get_height()
        cursor = stock.max + stockpad
    return ordered


def data_range(stocks, stockpad=0., layout=True):
    """
    Return the bounding box of the laid-out stocks.

    Parameters
    ----------
    stocks : dict
        ``{category: {label: Stock}}`` as returned by `aggregate_stocks`.
    stockpad : float, default: 0
        Passed on to `layout_stocks`.
    layout : bool, default: True
        Whether to lay out the stocks first. With *False* the current
        ``min``/``max`` of the stocks are used and their placeholders are
        left untouched.

    Returns
    -------
    tuple
        ``(category_min, category_max, value_min, value_max)``. For a diagram
        without stocks the minima are ``inf`` and the maxima ``-inf``.
    """
    cat_min, cat_max = np.inf, -np.inf
    for cat in stocks:
        cat_min = min(cat_min, cat)
        cat_max = max(cat_max, cat)
    ordered = stock_list(stocks)
    if layout:
        layout_stocks(ordered, stockpad)
    val_min, val_max = np.inf, -np.inf
    for stock in ordered:
        val_min = min(val_min, stock.min)
        val_max = max(val_max, stock.max)
    return cat_min, cat_max, val_min, val_max


def spline(begin, end, bar_width, offset_frac=0.1, npoints=20):
    """
    Interpolate an S-shaped curve from *begin* to *end*.

    Parameters
    ----------
    begin, end : (float, float)
        Start and end point of the curve.
    bar_width : float
        Width of the stock bars. A fraction *offset_frac* of it sets how far
        the curve stays flat next to its end points.
    offset_frac : float, default: 0.1
        See *bar_width*.
    npoints : int, default: 20
        Number of points on the curve.

    Returns
    -------
    (npoints, 2) ndarray
        Points of the curve, ordered from *begin* to *end*, evaluated at evenly
        spaced x positions.
    """
    bx, by = begin
    ex, ey = end
    ox = np.linspace(bx, ex, npoints)
    # keep the control points strictly monotonic
    offset = min(bar_width * offset_frac, abs(ex - bx) / 3)
    if bx == ex or offset <= 0:
        return np.column_stack([ox, np.linspace(by, ey, npoints)])
    direction = 1 if ex > bx else -1
    x = np.array([bx, bx + direction * offset, ex - direction * offset, ex])
    y = np.array([by, by, ey, ey])
    if direction < 0:
        x, y = x[::-1], y[::-1]
    spl = CubicSpline(x, y, bc_type='natural')
    return np.column_stack([ox, spl(ox)])
