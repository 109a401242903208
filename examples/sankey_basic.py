"""
=================================
Sankey Demo - Stocks and flows
=================================

Draw a Sankey diagram of apples going from trees to consumers and on to their
fate.
"""
import matplotlib.pyplot as plt
from pysankey import Sankey, Flow

# Define the stock categories
tree_type, consumer, fate = 0, 1, 2
category_labels = ['Tree type', 'Consumer', 'Fate']

flows = [
    Flow(tree_type, 'Large', consumer, 'Mohamed', 5),
    Flow(tree_type, 'Small', consumer, 'Mohamed', 2),
    Flow(tree_type, 'Large', consumer, 'Sofia', 3),
    Flow(tree_type, 'Small', consumer, 'Sofia', 1),
    Flow(tree_type, 'Large', consumer, 'Wei', 6),
    Flow(consumer, 'Mohamed', fate, 'Eaten', 6),
    Flow(consumer, 'Mohamed', fate, 'Waste', 1),
    Flow(consumer, 'Sofia', fate, 'Eaten', 3),
    Flow(consumer, 'Sofia', fate, 'Waste', 0.5),  # An unbalanced flow
    Flow(consumer, 'Wei', fate, 'Eaten', 5),
    Flow(consumer, 'Wei', fate, 'Waste', 1),
    Flow(tree_type, 'Large', fate, 'Waste', 1),
    Flow(tree_type, 'Small', fate, 'Waste', 0.3),
]

fig, ax = plt.subplots(figsize=(6, 3.6))
sankey = Sankey(flows, ax=ax)
sankey.finish(category_labels=category_labels)
ax.set_ylabel('Number of apples')

plt.show()
