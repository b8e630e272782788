import config


def test_int_tuple():
    assert config.int_tuple("1,3,6,12") == (1, 3, 6, 12)
    assert config.int_tuple(" 2, 4 ,, ") == (2, 4)
    assert config.int_tuple("") == ()


def test_default_heatmap_settings():
    assert config.HEATMAP_RANGES
    assert all(isinstance(m, int) for m in config.HEATMAP_RANGES)
