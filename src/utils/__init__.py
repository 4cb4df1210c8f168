from .figure_style import apply_style, get_color_palette, save_figure
