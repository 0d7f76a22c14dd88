import pytest
from pidcuts.cuts import PIDCuts, CutParameter
from pidcuts.qa import PIDCutsQA, QALevel, momentum_edges, load_qa
from pidcuts.species import Species, Detector
from pidcuts.track import Track, RecordedResponse


def kaon_track(tpc=0.0, tof=0.0, has_tof=True, p=1.0):
    return Track(
        p=p,
        its_signal=80.0,
        tpc_signal=-60.0,
        tof_in=has_tof,
        integrated_length=370.0,
        tof_signal=13000.0,
        nsigmas={
            (Detector.ITS, Species.KAON): 0.5,
            (Detector.TPC, Species.KAON): tpc,
            (Detector.TOF, Species.KAON): tof,
        },
    )


def make_cuts(level, fill_before="heavy"):
    cuts = PIDCuts("PIDCuts", Species.KAON, qa_level=level, fill_before=fill_before)
    assert cuts.set_cut_and_params(CutParameter.TPC_K, 7)
    assert cuts.set_cut_and_params(CutParameter.TOF_K, 5)
    cuts.init_cuts(RecordedResponse())
    cuts.notify_run("LHC18q")
    return cuts


def test_momentum_edges():
    edges = momentum_edges()
    assert len(edges) == 151
    assert edges[0] == pytest.approx(0.05)
    assert edges[-1] == pytest.approx(20.0)


def test_no_histograms_at_level_none():
    qa = PIDCutsQA("PIDCuts", level=QALevel.NONE)
    assert qa.histograms == {}


def test_light_level_booking():
    qa = PIDCutsQA("PIDCuts", level=QALevel.LIGHT)
    assert "CutsStatistics" in qa.histograms
    assert "CutCorrelation" not in qa.histograms
    assert "TPCTOFSigmaA" in qa.histograms
    assert "TOFSignalB" in qa.histograms


def test_invalid_fill_policy():
    with pytest.raises(ValueError):
        PIDCutsQA("PIDCuts", fill_before="never")


def test_statistics(tmp_path):
    cuts = make_cuts(QALevel.LIGHT)
    cuts.is_track_accepted(kaon_track())
    cuts.is_track_accepted(kaon_track(tpc=4.0))
    cuts.is_track_accepted(kaon_track(has_tof=False))

    statistics = cuts.qa["CutsStatistics"]
    assert statistics["n tracks"] == 3
    assert statistics["n cut tracks"] == 1
    assert statistics["TPC dE/dx n#sigma"] == 3
    assert statistics["TOF n#sigma"] == 2
    assert statistics["TPC+TOF 2D"] == 0


def test_light_fills_only_accepted_after_sample():
    cuts = make_cuts(QALevel.LIGHT)
    cuts.is_track_accepted(kaon_track())
    cuts.is_track_accepted(kaon_track(tpc=4.0))

    assert cuts.qa["TPCdEdxSigmaA"].sum() == 1
    assert cuts.qa["TPCdEdxSigmaB"].sum() == 0


def test_heavy_fills_before_sample_and_correlation():
    cuts = make_cuts(QALevel.HEAVY)
    cuts.is_track_accepted(kaon_track())
    cuts.is_track_accepted(kaon_track(tpc=4.0))
    cuts.is_track_accepted(kaon_track(has_tof=False))

    assert cuts.qa["TPCdEdxSigmaB"].sum() == 3
    assert cuts.qa["TPCdEdxSigmaA"].sum() == 2
    # TOF samples only for tracks with a usable TOF hit
    assert cuts.qa["TOFSigmaB"].sum() == 2
    assert cuts.qa["TPCTOFSigmaB"].sum() == 2

    correlation = cuts.qa["CutCorrelation"]
    assert correlation["TPC dE/dx n#sigma", "TPC dE/dx n#sigma"] == 3
    assert correlation["TPC dE/dx n#sigma", "TOF n#sigma"] == 2
    assert correlation["TOF n#sigma", "TPC dE/dx n#sigma"] == 0


def test_always_fill_policy():
    cuts = make_cuts(QALevel.LIGHT, fill_before="always")
    cuts.is_track_accepted(kaon_track(tpc=4.0))
    assert cuts.qa["TPCdEdxSigmaB"].sum() == 1
    assert cuts.qa["TPCdEdxSigmaA"].sum() == 0


def test_tof_beta():
    response = RecordedResponse(start_time=0.0)
    beta = response.raw_signal(Detector.TOF, kaon_track())
    # 370 cm in 13 ns
    assert beta == pytest.approx(370.0 / 13000.0 / 0.0299792458)
    assert response.raw_signal(Detector.TPC, kaon_track()) == 60.0


def test_save_and_load(tmp_path):
    cuts = make_cuts(QALevel.LIGHT)
    cuts.is_track_accepted(kaon_track())
    path = cuts.qa.save(tmp_path / "qa" / "pidcuts_qa.pkl")

    stored = load_qa(path)
    assert stored["period"] == "LHC18q"
    assert stored["histograms"]["CutsStatistics"]["n tracks"] == 1
