import colorsys

DEFAULT_HUE = 260.0


def hsl_to_hex(hue: float, saturation: float, lightness: float) -> str:
    """#rrggbb for an HSL colour; hue in degrees."""
    r, g, b = colorsys.hls_to_rgb((hue % 360) / 360.0, lightness, saturation)
    return '#{:02x}{:02x}{:02x}'.format(round(r * 255), round(g * 255), round(b * 255))


def athan_color(hue: float = DEFAULT_HUE) -> str:
    return hsl_to_hex(hue, 0.80, 0.50)


def reminder_color(hue: float = DEFAULT_HUE) -> str:
    # less saturated than the athan accent
    return hsl_to_hex(hue, 0.45, 0.55)
