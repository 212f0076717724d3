from django.urls import path
from . import views

app_name = 'gangs'

urlpatterns = [
    path("me/", views.me, name="me"),

    # Gangs and roster
    path("gangs/", views.gangs, name="gangs"),
    path("gangs/<uuid:gang_id>/", views.gang_detail, name="gang_detail"),
    path("gangs/<uuid:gang_id>/join/", views.join_gang, name="join_gang"),
    path("gangs/<uuid:gang_id>/leave/", views.leave_gang, name="leave_gang"),
    path("gangs/<uuid:gang_id>/disband/", views.disband_gang, name="disband_gang"),
    path("gangs/<uuid:gang_id>/members/<int:user_id>/kick/", views.kick_member, name="kick_member"),
    path("gangs/<uuid:gang_id>/members/<int:user_id>/role/", views.set_member_role, name="set_member_role"),
    path("gangs/<uuid:gang_id>/members/<int:user_id>/promote/", views.promote_member, name="promote_member"),
    path("gangs/<uuid:gang_id>/members/<int:user_id>/demote/", views.demote_member, name="demote_member"),
    path("gangs/<uuid:gang_id>/members/<int:user_id>/lead/", views.transfer_leadership, name="transfer_leadership"),

    # Treasury
    path("gangs/<uuid:gang_id>/deposit/", views.deposit, name="deposit"),
    path("gangs/<uuid:gang_id>/withdraw/", views.withdraw, name="withdraw"),

    # Territory and wars
    path("territories/", views.territories, name="territories"),
    path("territories/<uuid:territory_id>/", views.territory_detail, name="territory_detail"),
    path("gangs/<uuid:gang_id>/attack/<uuid:territory_id>/", views.attack_territory, name="attack_territory"),
    path("wars/", views.wars_list, name="wars"),
    path("wars/active/", views.active_wars, name="active_wars"),
    path("wars/<uuid:war_id>/", views.war_detail, name="war_detail"),
    path("wars/<uuid:war_id>/join/", views.join_war, name="join_war"),
    path("wars/<uuid:war_id>/contribute/", views.contribute_to_war, name="contribute_to_war"),
    path("wars/<uuid:war_id>/end/", views.end_war, name="end_war"),

    # Missions
    path("gangs/<uuid:gang_id>/missions/", views.gang_missions, name="gang_missions"),
    path("gangs/<uuid:gang_id>/missions/<uuid:mission_id>/start/", views.start_mission, name="start_mission"),
    path("missions/attempts/<uuid:attempt_id>/", views.mission_attempt, name="mission_attempt"),
    path("missions/attempts/<uuid:attempt_id>/collect/", views.collect_mission, name="collect_mission"),
]
