from .layout import (Flow, Stock, SankeyError, InvalidOrderingError,
                     NegativeValueError, FlowReusedError,
                     UnknownGroupStyleError, DEFAULT_GROUP)
from .plotting import (Sankey, DrawingSurface, GroupStyleResolver,
                       GroupStyleMap, FlowThumbnail, FlowThumbnailHandler)
