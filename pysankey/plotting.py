import logging
import numpy as np
import matplotlib as mpl
from matplotlib import artist as martist
from matplotlib.cbook import normalize_kwargs as normed_kws
from matplotlib.font_manager import FontProperties, findfont, get_font
from matplotlib.legend import Legend
from matplotlib.lines import Line2D
from matplotlib.patches import Polygon
from matplotlib.text import Text
from matplotlib.transforms import Bbox, IdentityTransform
import matplotlib.ticker as mticker

from .layout import (Flow, UnknownGroupStyleError, aggregate_stocks,
                     data_range, layout_stocks, spline, stock_list)

_log = logging.getLogger(__name__)

# TODO: put values to rcParams
DEFAULT_COLOR = (0., 0., 0., 100 / 255)
DEFAULT_LINESTYLE = dict(
    color=(0., 0., 0., 150 / 255),
    linewidth=1.0,
    linestyle='-',
)
# the default bar width is this factor times the label font height
BAR_WIDTH_FACTOR = 1.15


def _line_props(linestyle=None):
    """Complete *linestyle* with the default border line style."""
    props = dict(DEFAULT_LINESTYLE)
    props.update(normed_kws(linestyle, Line2D))
    return props


def _text_props(textprops=None):
    """Complete *textprops* with the default stock label style."""
    props = dict(
        fontsize=mpl.rcParams['font.size'],
        rotation=90,
        horizontalalignment='center',
        verticalalignment='center',
    )
    props.update(normed_kws(textprops, Text))
    return props


def _font_height(textprops):
    """Return ascender plus descender of the label font in points."""
    prop = textprops.get('fontproperties')
    if not isinstance(prop, FontProperties):
        prop = FontProperties(family=textprops.get('fontfamily'),
                              style=textprops.get('fontstyle'),
                              weight=textprops.get('fontweight'),
                              size=textprops.get('fontsize'))
    font = get_font(findfont(prop))
    return ((font.ascender - font.descender) / font.units_per_EM
            * prop.get_size_in_points())


class DrawingSurface:
    """
    The drawing capabilities a `Sankey` needs to render itself.

    Coordinates are given in the units of the surface, e.g. display pixels
    when drawing into a figure. Colors are matplotlib colors, line styles and
    text styles are dicts of `.Line2D` and `.Text` properties.
    """

    def points_to_pixels(self, points):
        """Convert a length in points to surface units."""
        return points

    def contains_x(self, x):
        """Indicate whether *x* lies within the visible horizontal range."""
        return True

    def fill_polygon(self, color, points, clip_x=False):
        """
        Fill the polygon through *points*. If *clip_x* is set, nothing is
        drawn outside the visible horizontal range.
        """
        raise NotImplementedError('Derived must override')

    def stroke_lines(self, linestyle, *lines, clip_x=False):
        """Stroke each sequence of points in *lines* as a polyline."""
        raise NotImplementedError('Derived must override')

    def fill_text(self, textprops, point, text):
        """Draw *text* at *point*."""
        raise NotImplementedError('Derived must override')


class _ArtistSurface(DrawingSurface):
    """A drawing surface that expresses each primitive as an artist."""

    def _emit(self, artist, clip_x):
        raise NotImplementedError('Derived must override')

    def fill_polygon(self, color, points, clip_x=False):
        self._emit(Polygon(np.asarray(points), closed=True, facecolor=color,
                           edgecolor='none', linewidth=0), clip_x)

    def stroke_lines(self, linestyle, *lines, clip_x=False):
        for line in lines:
            xy = np.asarray(line)
            self._emit(Line2D(xy[:, 0], xy[:, 1], **linestyle), clip_x)

    def fill_text(self, textprops, point, text):
        self._emit(Text(point[0], point[1], text, **textprops), False)


class _RendererSurface(_ArtistSurface):
    """
    Draws directly with a renderer in display coordinates.

    The artists are transient: they are drawn once and dropped.
    """

    def __init__(self, renderer, artist):
        self._renderer = renderer
        self._figure = artist.figure
        self._axbox = artist.axes.bbox
        figbox = self._figure.bbox
        # clip horizontally only
        self._xclip = Bbox.from_extents(self._axbox.x0, figbox.y0,
                                        self._axbox.x1, figbox.y1)

    def points_to_pixels(self, points):
        return self._renderer.points_to_pixels(points)

    def contains_x(self, x):
        return self._axbox.x0 <= x <= self._axbox.x1

    def _emit(self, artist, clip_x):
        artist.set_transform(IdentityTransform())
        artist.set_figure(self._figure)
        if clip_x:
            artist.set_clip_box(self._xclip)
        artist.draw(self._renderer)


class _HandleboxSurface(_ArtistSurface):
    """Adds the artists to a legend handlebox, coordinates are in points."""

    def __init__(self, handlebox):
        self._handlebox = handlebox
        self.artists = []

    def _emit(self, artist, clip_x):
        self._handlebox.add_artist(artist)
        self.artists.append(artist)


class GroupStyleResolver:
    """
    Resolve the fill color and border line style of a flow group.

    This resolver returns the same style for every group. Subclasses override
    :meth:`resolve` to style groups differently.
    """

    def __init__(self, color=None, linestyle=None):
        """
        Parameters
        ----------
        color : color, optional
            Fill color of the flows.
        linestyle : dict, optional
            `.Line2D` properties of the flow borders.
        """
        self._color = DEFAULT_COLOR if color is None else color
        self._linestyle = _line_props(linestyle)

    def resolve(self, group):
        """Return the ``(color, linestyle)`` pair for *group*."""
        return self._color, dict(self._linestyle)


class GroupStyleMap(GroupStyleResolver):
    """
    Style flows by looking up their group in a mapping.

    Groups missing in the mapping raise an `UnknownGroupStyleError` instead
    of falling back to a default style.
    """

    def __init__(self, styles, linestyle=None):
        """
        Parameters
        ----------
        styles : dict
            Maps a group to either a color or a ``(color, linestyle)`` tuple.
        linestyle : dict, optional
            `.Line2D` properties used for groups mapped to a color only.
        """
        super().__init__(linestyle=linestyle)
        self._styles = dict(styles)

    def resolve(self, group):
        try:
            style = self._styles[group]
        except KeyError:
            raise UnknownGroupStyleError(
                f"invalid group '{group}', known groups are"
                f" {sorted(self._styles)}"
            ) from None
        if (isinstance(style, tuple) and len(style) == 2
                and isinstance(style[1], dict)):
            return style[0], _line_props(style[1])
        return style, dict(self._linestyle)


class _CallableStyle(GroupStyleResolver):
    """Wraps a function ``group -> (color, linestyle)``."""

    def __init__(self, func):
        self._func = func

    def resolve(self, group):
        color, linestyle = self._func(group)
        return color, _line_props(linestyle)


class _DiagramStyle(GroupStyleResolver):
    """Uses the current color and line style of a diagram for all groups."""

    def __init__(self, diagram):
        self._diagram = diagram

    def resolve(self, group):
        return self._diagram.get_color(), self._diagram.get_linestyle()


def _axes_transforms(ax):
    """Return functions mapping categories and values to display coords."""
    trans = ax.transData
    x0, y0 = ax.get_xlim()[0], ax.get_ylim()[0]

    def tr_cat(category):
        return trans.transform((category, y0))[0]

    def tr_val(value):
        return trans.transform((x0, value))[1]
    return tr_cat, tr_val


class Sankey(martist.Artist):
    """
    Sankey diagram.

        A Sankey diagram presents stock and flow data as rectangles
        representing the amount of each stock and bands between the stocks
        representing the amount of each flow. Stocks are arranged in columns,
        one per category, and stacked in the order they first appear in the
        flows.
    """

    def __init__(self, flows, ax=None, stockpad=0., color=None,
                 linestyle=None, textprops=None, bar_width=None,
                 flow_style=None, **kwargs):
        """
        Create a new Sankey diagram.

        Parameters
        ===========
        flows : sequence of `.Flow`
          The flows of the diagram. The diagram takes ownership of the flows,
          a flow cannot be used in another diagram afterwards.
        ax : `~.axes.Axes`, optional
          Axes onto which the diagram should be drawn.
          If *ax* is not provided a new Axes instance will be created.
        stockpad : float, default: 0
          Vertical space between stocks of the same category, in data units.
        color : color, optional
          Fill color of the stocks and default fill color of the flows.
        linestyle : dict, optional
          `.Line2D` properties of the stock and flow borders.
        textprops : dict, optional
          `.Text` properties of the stock labels. By default labels are
          rotated by 90 degrees and centered on the stocks.
        bar_width : float, optional
          Width of the stock bars in points. The default is 15% larger than
          the height of the label font.
        flow_style : `.GroupStyleResolver` or callable, optional
          Determines fill color and border line style of a flow from its
          group. A callable must take the group and return a
          ``(color, linestyle)`` tuple. By default all flows use *color* and
          *linestyle*.

        Other Parameters
        ----------------
        **kwargs : `.Artist` properties

        Raises
        ------
        InvalidOrderingError
          If a flow does not lead to a higher category.
        NegativeValueError
          If a flow has a negative value.
        FlowReusedError
          If a flow was already used by another diagram.
        """
        super().__init__()
        # validate and aggregate before anything else gets created
        self._stocks, self._flows = aggregate_stocks(flows)
        if ax is None:
            import matplotlib.pyplot as plt
            fig = plt.figure()
            ax = fig.add_subplot(1, 1, 1)
        self.ax = ax
        self._stockpad = stockpad
        layout_stocks(stock_list(self._stocks), self._stockpad)
        self._color = DEFAULT_COLOR if color is None else color
        self._linestyle = _line_props(linestyle)
        self._textprops = _text_props(textprops)
        self._bar_width = bar_width
        self.set_flow_style(flow_style)
        # shape of the flow curves
        self.offset_frac = 0.1
        self.npoints = 20
        self.update(kwargs)

    @classmethod
    def from_records(cls, records, **kwargs):
        """
        Create a Sankey diagram from a table of flow records.

        See :meth:`.Flow.from_records` for the format of *records*, all other
        arguments are passed on to `Sankey`.
        """
        return cls(Flow.from_records(records), **kwargs)

    def get_stockpad(self):
        """Return the vertical space between stocks of a category."""
        return self._stockpad

    def set_stockpad(self, stockpad):
        """Set the vertical space between stocks of a category."""
        self._stockpad = stockpad
        layout_stocks(stock_list(self._stocks), self._stockpad)
        self.stale = True

    def get_color(self):
        """Return the fill color of the stocks."""
        return self._color

    def set_color(self, color):
        """Set the fill color of the stocks and of flows without style."""
        self._color = color
        self.stale = True

    def get_linestyle(self):
        """Return the border line style as a dict of `.Line2D` properties."""
        return dict(self._linestyle)

    def set_linestyle(self, linestyle):
        """Set the border line style, missing properties get defaults."""
        self._linestyle = _line_props(linestyle)
        self.stale = True

    def get_textprops(self):
        """Return the `.Text` properties of the stock labels."""
        return dict(self._textprops)

    def set_textprops(self, textprops):
        """Update the `.Text` properties of the stock labels."""
        self._textprops.update(normed_kws(textprops, Text))
        self.stale = True

    def get_bar_width(self):
        """Return the width of the stock bars in points."""
        if self._bar_width is None:
            return BAR_WIDTH_FACTOR * _font_height(self._textprops)
        return self._bar_width

    def set_bar_width(self, bar_width):
        """
        Set the width of the stock bars in points. If *bar_width* is None the
        width follows the label font size.
        """
        self._bar_width = bar_width
        self.stale = True

    def get_flow_style(self):
        """Return the `.GroupStyleResolver` styling the flows."""
        return self._flow_style

    def set_flow_style(self, flow_style):
        """
        Set how flows are styled based on their group.

        Parameters
        ----------
        flow_style : `.GroupStyleResolver`, callable or None
            A callable must take a group and return a ``(color, linestyle)``
            tuple. If None, all flows use the color and line style of the
            diagram.
        """
        if flow_style is None:
            flow_style = _DiagramStyle(self)
        elif not isinstance(flow_style, GroupStyleResolver):
            if not callable(flow_style):
                raise TypeError("'flow_style' must be a GroupStyleResolver or"
                                " a callable, '{ftype}' is not supported."
                                .format(ftype=type(flow_style)))
            flow_style = _CallableStyle(flow_style)
        self._flow_style = flow_style
        self.stale = True

    def get_flows(self):
        """Return the flows of the diagram in the order they were given."""
        return list(self._flows)

    def get_stock(self, category, label):
        """Return the stock with *label* in *category*."""
        return self._stocks[category][label]

    def get_stocks(self):
        """Return all stocks, laid out and sorted by category and order."""
        return stock_list(self._stocks)

    def get_data_range(self):
        """
        Return ``(category_min, category_max, value_min, value_max)``, the
        extent of the diagram in data coordinates.
        """
        return data_range(self._stocks, layout=False)

    def spline(self, begin, end, bar_width=None):
        """
        Return the points of a flow edge from *begin* to *end*.

        *bar_width* must be in the same units as the points and defaults to
        the bar width in points.
        """
        if bar_width is None:
            bar_width = self.get_bar_width()
        return spline(begin, end, bar_width, offset_frac=self.offset_frac,
                      npoints=self.npoints)

    def plot(self, surface, tr_cat, tr_val):
        """
        Render the diagram onto a drawing surface.

        Parameters
        ----------
        surface : `.DrawingSurface`
            Receives the drawing instructions.
        tr_cat, tr_val : callable
            Map a category and a stacked value to surface coordinates.

        Note that a rendering pass keeps track of the stock portions claimed
        by flows on the stocks themselves. A diagram must not be rendered by
        two passes at the same time.
        """
        stocks = layout_stocks(stock_list(self._stocks), self._stockpad)
        width = surface.points_to_pixels(self.get_bar_width())

        for flow in self._flows:
            start = self._stocks[flow.source_category][flow.source_label]
            end = self._stocks[flow.receptor_category][flow.receptor_label]
            cat_start = tr_cat(flow.source_category) + width / 2
            cat_end = tr_cat(flow.receptor_category) - width / 2
            val_start = start.min + start.source_placeholder
            val_end = end.min + end.receptor_placeholder
            start.source_placeholder += flow.value
            end.receptor_placeholder += flow.value

            pts_low = self.spline((cat_start, tr_val(val_start)),
                                  (cat_end, tr_val(val_end)), width)
            pts_high = self.spline((cat_end, tr_val(val_end + flow.value)),
                                   (cat_start, tr_val(val_start + flow.value)),
                                   width)
            color, linestyle = self._flow_style.resolve(flow.group)
            surface.fill_polygon(color, np.concatenate([pts_low, pts_high]),
                                 clip_x=True)
            surface.stroke_lines(linestyle, pts_low, pts_high, clip_x=True)

        for stock in stocks:
            cat_loc = tr_cat(stock.category)
            if not surface.contains_x(cat_loc):
                _log.debug(f"Category {stock.category} is out of view, skip"
                           f" stock '{stock.label}'.")
                continue
            cat_min, cat_max = cat_loc - width / 2, cat_loc + width / 2
            val_min, val_max = tr_val(stock.min), tr_val(stock.max)
            surface.fill_polygon(self._color, [(cat_min, val_min),
                                               (cat_min, val_max),
                                               (cat_max, val_max),
                                               (cat_max, val_min)])
            surface.fill_text(dict(self._textprops),
                              ((cat_min + cat_max) / 2,
                               (val_min + val_max) / 2),
                              stock.label)
            # bottom edge
            surface.stroke_lines(self._linestyle,
                                 [(cat_min, val_min), (cat_max, val_min)])
            # top edge plus the vertical edge next to the unbalanced part
            pts = [(cat_min, val_max), (cat_max, val_max)]
            gap = stock.source_value - stock.receptor_value
            if gap > 0:  # inflows (left) fall short
                pts.insert(0, (cat_min, tr_val(stock.max - gap)))
            elif gap < 0:  # outflows (right) fall short
                pts.append((cat_max, tr_val(stock.max + gap)))
            surface.stroke_lines(self._linestyle, pts)

    @martist.allow_rasterization
    def draw(self, renderer):
        """Draw the diagram with *renderer*."""
        if not self.get_visible():
            return
        renderer.open_group('sankey', gid=self.get_gid())
        try:
            self.plot(_RendererSurface(renderer, self),
                      *_axes_transforms(self.axes))
        finally:
            renderer.close_group('sankey')
        self.stale = False

    def finish(self, category_labels=None):
        """
        Attach the diagram to its axes and adapt the axes to it.

        Parameters
        ----------
        category_labels : sequence of str, optional
            Tick labels for the categories ``0, 1, ...``.

        Calling this method repeatedly has the same effect as calling it once.
        """
        if self.axes is None:
            self.ax.add_artist(self)
        cat_min, cat_max, val_min, val_max = self.get_data_range()
        ticks = sorted(self._stocks)
        if category_labels is not None:
            category_labels = list(category_labels)
            if ticks and (ticks[0] < 0 or ticks[-1] >= len(category_labels)):
                _log.warning(
                    f"Got {len(category_labels)} category labels, categories"
                    f" {ticks[0]} to {ticks[-1]} are not all labelled."
                )
            ticks = list(range(len(category_labels)))
            self.ax.xaxis.set_major_formatter(
                mticker.FixedFormatter(category_labels)
            )
            if ticks:
                cat_min = min(cat_min, ticks[0])
                cat_max = max(cat_max, ticks[-1])
        self.ax.xaxis.set_major_locator(mticker.FixedLocator(ticks))
        self.ax.xaxis.set_ticks_position('bottom')
        if self._stocks:
            self.ax.update_datalim([(cat_min, val_min), (cat_max, val_max)])
            self.ax.set_xlim(cat_min - 0.5, cat_max + 0.5)
            self.ax.set_ylim(val_min, val_max)
        self.stale = True

    def groups_and_thumbnails(self):
        """
        Return the sorted flow groups and a `.FlowThumbnail` for each.

        The thumbnails are legend handles: pass them along with the groups to
        :meth:`~.axes.Axes.legend`.
        """
        groups = sorted({flow.group for flow in self._flows})
        thumbnails = [FlowThumbnail(*self._flow_style.resolve(group))
                      for group in groups]
        return groups, thumbnails

    def legend(self, **kwargs):
        """Add a legend with an entry for each flow group to the axes."""
        groups, thumbnails = self.groups_and_thumbnails()
        return self.ax.legend(thumbnails, groups, **kwargs)


class FlowThumbnail:
    """Legend entry showing the style of a flow group."""

    def __init__(self, color, linestyle):
        self.color = color
        self.linestyle = linestyle

    def thumbnail(self, surface, x0, y0, x1, y1):
        """Fill the rectangle and draw its upper and lower border."""
        surface.fill_polygon(self.color, [(x0, y0), (x0, y1), (x1, y1),
                                          (x1, y0)])
        surface.stroke_lines(self.linestyle, [(x0, y1), (x1, y1)])
        surface.stroke_lines(self.linestyle, [(x0, y0), (x1, y0)])


class FlowThumbnailHandler:
    """Legend handler drawing a `FlowThumbnail` into the handle box."""

    def legend_artist(self, legend, orig_handle, fontsize, handlebox):
        x0, y0 = handlebox.xdescent, handlebox.ydescent
        surface = _HandleboxSurface(handlebox)
        orig_handle.thumbnail(surface, x0, y0, x0 + handlebox.width,
                              y0 + handlebox.height)
        return surface.artists[0]


# set the legend handler for flow groups
Legend.update_default_handler_map({FlowThumbnail: FlowThumbnailHandler()})
