from enum import Enum


class Rolle(str, Enum):
    """Rollen von Mitarbeitern und Kunden"""
    ADMIN = "admin"
    VERKAUF = "verkauf"
    KOMMISSIONIERUNG = "kommissionierung"
    KONTROLLE = "kontrolle"
    BUCHHALTUNG = "buchhaltung"
    WARENEINGANG = "wareneingang"
    LAGER = "lager"
    FAHRER = "fahrer"
    ZERLEGER = "zerleger"
    STATISTIK = "statistik"
    KUNDE = "kunde"
    SUPPORT = "support"


class Einheit(str, Enum):
    """Mengeneinheit einer Artikelposition"""
    KG = "kg"
    STUECK = "stück"
    KISTE = "kiste"
    KARTON = "karton"


class ErfassungsModus(str, Enum):
    """Wie ein Artikel bei der Kommissionierung erfasst wird"""
    GEWICHT = "GEWICHT"
    KARTON = "KARTON"
    STUECK = "STÜCK"


class AuftragStatus(str, Enum):
    """Gesamtstatus eines Auftrags"""
    OFFEN = "offen"
    IN_BEARBEITUNG = "in Bearbeitung"
    ABGESCHLOSSEN = "abgeschlossen"
    STORNIERT = "storniert"


class KommissioniertStatus(str, Enum):
    """Fortschritt der Kommissionierung"""
    OFFEN = "offen"
    GESTARTET = "gestartet"
    FERTIG = "fertig"


class KontrolliertStatus(str, Enum):
    """Fortschritt der Qualitätskontrolle"""
    OFFEN = "offen"
    IN_KONTROLLE = "in Kontrolle"
    GEPRUEFT = "geprüft"


class BeladeStatus(str, Enum):
    """Verladung auf das Fahrzeug"""
    OFFEN = "offen"
    BELADEN = "beladen"


class Zahlstatus(str, Enum):
    """Zahlungsstatus eines Auftrags"""
    OFFEN = "offen"
    TEILWEISE = "teilweise"
    BEZAHLT = "bezahlt"


class TourStatus(str, Enum):
    """Status einer Liefertour"""
    GEPLANT = "geplant"
    LAUFEND = "laufend"
    ABGESCHLOSSEN = "abgeschlossen"
    ARCHIVIERT = "archiviert"


class StopStatus(str, Enum):
    """Zustellstatus eines Tour-Stopps"""
    OFFEN = "offen"
    UNTERWEGS = "unterwegs"
    ZUGESTELLT = "zugestellt"
    TEILWEISE = "teilweise"
    FEHLGESCHLAGEN = "fehlgeschlagen"


class FehlgrundCode(str, Enum):
    """Grund für eine fehlgeschlagene Zustellung"""
    KUNDE_NICHT_ERREICHBAR = "KUNDE_NICHT_ERREICHBAR"
    ANNAHME_VERWEIGERT = "ANNAHME_VERWEIGERT"
    FALSCH_ADRESSE = "FALSCH_ADRESSE"
    NICHT_RECHTZEITIG = "NICHT_RECHTZEITIG"
    WARE_BESCHAEDIGT = "WARE_BESCHAEDIGT"
    SONSTIGES = "SONSTIGES"


class ZerlegeStatus(str, Enum):
    """Status einer Zerlege-Position"""
    OFFEN = "offen"
    ERLEDIGT = "erledigt"


class Lagerbereich(str, Enum):
    """Lagerbereich (Tiefkühl / nicht Tiefkühl)"""
    TK = "TK"
    NON_TK = "NON_TK"


class BewegungsTyp(str, Enum):
    """Art einer Lagerbewegung im Journal"""
    WARENEINGANG = "WARENEINGANG"
    WARENAUSGANG = "WARENAUSGANG"
    RESERVIERUNG = "RESERVIERUNG"
    RESERVIERUNG_AUFLOESEN = "RESERVIERUNG_AUFLOESEN"
    KOMMISSIONIERUNG = "KOMMISSIONIERUNG"
    MULL = "MULL"
    INVENTUR_KORREKTUR = "INVENTUR_KORREKTUR"
    UMBUCHUNG_HIN = "UMBUCHUNG_HIN"
    UMBUCHUNG_WEG = "UMBUCHUNG_WEG"
    RUECKLIEFERUNG_KUNDE = "RUECKLIEFERUNG_KUNDE"
    RUECKLIEFERUNG_LIEFERANT = "RUECKLIEFERUNG_LIEFERANT"

    @property
    def wirkt_auf_verfuegbar(self) -> bool:
        """Ob die Bewegung den verfügbaren Bestand verändert"""
        return self in {
            BewegungsTyp.WARENEINGANG,
            BewegungsTyp.WARENAUSGANG,
            BewegungsTyp.KOMMISSIONIERUNG,
            BewegungsTyp.MULL,
            BewegungsTyp.INVENTUR_KORREKTUR,
            BewegungsTyp.UMBUCHUNG_HIN,
            BewegungsTyp.UMBUCHUNG_WEG,
            BewegungsTyp.RUECKLIEFERUNG_KUNDE,
            BewegungsTyp.RUECKLIEFERUNG_LIEFERANT,
        }


class MuellGrund(str, Enum):
    """Grund einer Müll-Buchung"""
    MHD_ABGELAUFEN = "MHD_ABGELAUFEN"
    BESCHAEDIGT = "BESCHAEDIGT"
    VERDERB = "VERDERB"
    RUECKWEISUNG_KUNDE = "RUECKWEISUNG_KUNDE"
    SONSTIGES = "SONSTIGES"

    @property
    def text(self) -> str:
        """Lesbarer Text für Notizen"""
        texte = {
            MuellGrund.MHD_ABGELAUFEN: "MHD abgelaufen",
            MuellGrund.BESCHAEDIGT: "Beschädigt",
            MuellGrund.VERDERB: "Verderb",
            MuellGrund.RUECKWEISUNG_KUNDE: "Rückweisung Kunde",
            MuellGrund.SONSTIGES: "Sonstiges",
        }
        return texte.get(self, "Sonstiges")


class ReservierungStatus(str, Enum):
    """Status einer Bestandsreservierung"""
    AKTIV = "AKTIV"
    ERFUELLT = "ERFUELLT"
    AUFGELOEST = "AUFGELOEST"


class MhdWarnung(str, Enum):
    """MHD-Warnstufe in der Bestandsübersicht"""
    NAH = "NAH"
    ABGELAUFEN = "ABGELAUFEN"
