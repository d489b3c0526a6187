import pytest

FOREFLIGHT_EXPORT = """ForeFlight Logbook Import,This row is required for importing into ForeFlight. Do not delete or modify.,,,
,,,,
Aircraft Table,,,,
AircraftID,TypeCode,Year,Make,Model
N123AB,C172,1978,Cessna,172N
N456CD,,2001,Piper,PA-28-181
,,,,
Flights Table,,,,
Date,AircraftID,From,To,Route,TimeOut,TimeIn,TotalTime,PIC,SIC,Night,DayLandingsFullStop,NightLandingsFullStop,AllLandings,Approach1,PilotComments
2023-01-05,N123AB,KPAO,KSQL,,14:00,15:00,1.0,1.0,0,0,1,0,1,,Pattern work
2023-01-06,N456CD,KSQL,KHWD,KSQL SUNOL KHWD,,,1.5,1.5,0,0.5,1,1,2,1;ILS;28L;KHWD,"Night XC, unstable approach"
2023-01-07,N123AB,KHWD,KPAO,,,,0,0,0,0,0,0,0,,Ground run only
TBD,N123AB,KPAO,KPAO,,,,1.0,1.0,0,0,0,0,0,,
"""

GENERIC_EXPORT = """My Logbook Export
Generated 2024-01-01
Flight Date,Tail,Departure,Arrival,Total Hours,Remarks
03/15/2022,N1,KAUS,KDFW,2.0,first
03/16/2022,N1,KDFW,KAUS,"1,5",
,,,,,
03/17/2022,N1,KAUS,KAUS,0.8,local
"""


@pytest.fixture
def foreflight_export():
    return FOREFLIGHT_EXPORT


@pytest.fixture
def generic_export():
    return GENERIC_EXPORT
