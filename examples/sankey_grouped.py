"""
=============================
Sankey Demo - Grouped flows
=============================

Draw a Sankey diagram with flows colored by the fruit they carry and add a
legend for the fruit groups.
"""
import matplotlib.pyplot as plt
from pysankey import Sankey, Flow, GroupStyleMap

tree_type, consumer, fate = 0, 1, 2

records = [
    (tree_type, 'Large', consumer, 'Mohamed', 5, 'Apples'),
    (tree_type, 'Large', consumer, 'Mohamed', 3, 'Dates'),
    (tree_type, 'Small', consumer, 'Mohamed', 2, 'Lychees'),
    (tree_type, 'Large', consumer, 'Sofia', 3, 'Apples'),
    (tree_type, 'Large', consumer, 'Sofia', 4, 'Dates'),
    (tree_type, 'Small', consumer, 'Sofia', 1, 'Apples'),
    (tree_type, 'Large', consumer, 'Wei', 6, 'Lychees'),
    (tree_type, 'Small', consumer, 'Wei', 3, 'Apples'),
    (consumer, 'Mohamed', fate, 'Eaten', 4, 'Apples'),
    (consumer, 'Mohamed', fate, 'Waste', 1, 'Apples'),
    (consumer, 'Mohamed', fate, 'Eaten', 3, 'Dates'),
    (consumer, 'Mohamed', fate, 'Waste', 2, 'Lychees'),
    (consumer, 'Sofia', fate, 'Eaten', 4, 'Apples'),
    (consumer, 'Sofia', fate, 'Eaten', 3, 'Dates'),
    (consumer, 'Sofia', fate, 'Waste', 1, 'Dates'),
    (consumer, 'Wei', fate, 'Eaten', 6, 'Lychees'),
    (consumer, 'Wei', fate, 'Eaten', 2, 'Apples'),
    (consumer, 'Wei', fate, 'Waste', 1, 'Apples'),
    (tree_type, 'Large', fate, 'Waste', 1, 'Apples'),
    (tree_type, 'Large', fate, 'Waste', 1, 'Dates'),
    (tree_type, 'Small', fate, 'Waste', 0.3, 'Lychees'),
]

# Colors of the fruit groups, a group missing here raises an error when the
# diagram is drawn.
fruit_style = GroupStyleMap({
    'Lychees': (242 / 255, 169 / 255, 178 / 255, 100 / 255),
    'Apples': (91 / 255, 194 / 255, 54 / 255, 100 / 255),
    'Dates': (112 / 255, 22 / 255, 0, 100 / 255),
})

fig, ax = plt.subplots(figsize=(6, 3.6))
# The stocks are white, only the flows carry the group colors
sankey = Sankey(Flow.from_records(records), ax=ax, color='white',
                flow_style=fruit_style)
sankey.finish(category_labels=['Tree type', 'Consumer', 'Fate'])
sankey.legend(loc='upper right')
ax.set_xlim(right=3.05)  # give room for the legend
ax.set_ylabel('Number of fruit pieces')

plt.show()
