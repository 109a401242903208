"""
=======================
A guide to Sankey plots
=======================

This guide covers styling of a :class:`~pysankey.Sankey` diagram and shows
how the layout can be inspected without drawing anything.

.. glossary::

   stock
         a labelled bucket in a category, drawn as a bar whose height is the
         larger of its in- and outgoing totals.

   flow
         a band between two stocks of different categories.

Stocks are stacked in the order they first show up in the flows. A stock whose
in- and outgoing totals differ keeps the difference visible as an open gap at
the top of the bar.
"""
from matplotlib import pyplot as plt
from pysankey import Sankey, Flow, DrawingSurface

records = [(0, 'Wind', 1, 'Grid', 4, 'Renewable'),
           (0, 'Solar', 1, 'Grid', 2.5, 'Renewable'),
           (0, 'Gas', 1, 'Grid', 5, 'Fossil'),
           (1, 'Grid', 2, 'Homes', 6, 'Renewable'),
           (1, 'Grid', 2, 'Industry', 4, 'Fossil')]


def style(group):
    """Color the flows by group, borders are dashed."""
    color = 'tab:green' if group == 'Renewable' else 'tab:gray'
    return color, dict(ls='--', lw=0.5)


fig, ax = plt.subplots()
sankey = Sankey.from_records(records, ax=ax, stockpad=0.5, flow_style=style,
                             textprops=dict(size=8))
sankey.finish(category_labels=['Source', 'Network', 'Use'])
sankey.legend(loc='upper left')

#############################################################################
# The layout is available before anything is drawn:

for stock in sankey.get_stocks():
    print(f"{stock.category} {stock.label:>8}: {stock.min:5.1f} to"
          f" {stock.max:5.1f}")


#############################################################################
# A rendering pass can also be sent to a custom drawing surface, here one that
# only counts the primitives:

class CountingSurface(DrawingSurface):
    def __init__(self):
        self.counts = dict(polygon=0, line=0, text=0)

    def fill_polygon(self, color, points, clip_x=False):
        self.counts['polygon'] += 1

    def stroke_lines(self, linestyle, *lines, clip_x=False):
        self.counts['line'] += len(lines)

    def fill_text(self, textprops, point, text):
        self.counts['text'] += 1


surface = CountingSurface()
sankey.plot(surface, tr_cat=lambda cat: 100 * cat, tr_val=lambda val: val)
print(surface.counts)

plt.show()
