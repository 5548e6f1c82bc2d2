#!/usr/bin/env python3
"""
drone-pilot CLI

Command-line client for dronepilot-server.
"""

import argparse
import math
import sys
import time

from .client import DronePilotClient, ServerError, ConnectionError


# ANSI colors
class Colors:
    RESET = '\033[0m'
    BOLD = '\033[1m'
    RED = '\033[91m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    CYAN = '\033[96m'


def color(text: str, c: str) -> str:
    """Apply color to text"""
    return f"{c}{text}{Colors.RESET}"


def print_error(msg: str):
    """Print error message"""
    print(color(f"Error: {msg}", Colors.RED))


def print_success(msg: str):
    """Print success message"""
    print(color(msg, Colors.GREEN))


def format_position(pos: dict) -> str:
    return f"x={pos.get('x', 0):.2f}  y={pos.get('y', 0):.2f}  z={pos.get('z', 0):.2f}"


# ==================== Commands ====================

def cmd_status(client: DronePilotClient, args):
    """Show drone state"""
    state = client.get_state()

    print()
    print(color("=== Drone Status ===", Colors.BOLD))

    state_name = state.get('state', 'unknown')
    state_color = Colors.GREEN if state_name == 'idle' else Colors.YELLOW
    print(f"Controller: {color(state_name.upper(), state_color)}")
    print(f"Active: {'Yes' if state.get('isActive') else 'No'}")
    print(f"Command: {state.get('currentCommand') or '-'}")
    print(f"Queued: {state.get('queueLength', 0)}")

    print()
    print(color("--- Position ---", Colors.CYAN))
    print(f"  {format_position(state.get('position', {}))}")
    print(f"  Heading: {math.degrees(state.get('headingRad', 0)):.1f}°")

    mission = client.get_active_mission()
    if mission.get('active'):
        print()
        print(color("--- Mission ---", Colors.CYAN))
        print(f"  State: {mission['state']}")
        print(f"  Progress: {mission['current']}/{mission['total']} ({mission['percentage']}%)")

    print()


def cmd_hover(client: DronePilotClient, args):
    """Hover in place (cancels everything)"""
    client.hover()
    print_success("Hovering")


def cmd_takeoff(client: DronePilotClient, args):
    """Take off"""
    result = client.take_off(args.altitude, wait=not args.no_wait)
    if args.no_wait:
        print_success("Take-off queued")
    else:
        print_success(f"Reached {result.get('altitude', 0):.2f} m")


def cmd_land(client: DronePilotClient, args):
    """Land"""
    client.land(wait=not args.no_wait)
    print_success("Land queued" if args.no_wait else "Landed")


def cmd_goto(client: DronePilotClient, args):
    """Fly to an absolute position"""
    options = {}
    if args.speed is not None:
        options['maxSpeed'] = args.speed
    result = client.move_to(args.x, args.z, y=args.y, options=options, wait=not args.no_wait)
    if args.no_wait:
        print_success("Move queued")
    else:
        print_success(f"Arrived at {format_position(result.get('position', {}))}")


def cmd_move(client: DronePilotClient, args):
    """Fly relative to the current position"""
    result = client.move_relative(
        forward=args.forward, right=args.right, up=args.up,
        frame=args.frame, wait=not args.no_wait,
    )
    if args.no_wait:
        print_success("Move queued")
    else:
        print_success(f"Arrived at {format_position(result.get('position', {}))}")


def cmd_cancel(client: DronePilotClient, args):
    """Cancel everything and hover"""
    client.cancel()
    print_success("Cancelled")


def cmd_pause(client: DronePilotClient, args):
    """Pause current command or mission"""
    result = client.pause()
    if result.get('paused'):
        print_success("Paused")
    else:
        print_error("Nothing running to pause")


def cmd_resume(client: DronePilotClient, args):
    """Resume after pause"""
    result = client.resume()
    if result.get('resumed'):
        print_success("Resumed")
    else:
        print_error("Not paused")


def cmd_mission(client: DronePilotClient, args):
    """Start a mission from a JSON file"""
    result = client.start_mission_file(args.file)
    print_success(f"Mission started ({result.get('waypoints', 0)} waypoints)")

    if not args.follow:
        return

    last = None
    while True:
        status = client.get_active_mission()
        if not status.get('active'):
            print_success("Mission finished")
            return
        progress = (status.get('current'), status.get('state'))
        if progress != last:
            print(f"  Waypoint {status['current'] + 1}/{status['total']} [{status['state']}]")
            last = progress
        time.sleep(0.5)


# ==================== Main ====================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='dronepilot',
        description='drone-pilot CLI',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  dronepilot status                   Show drone state
  dronepilot takeoff 1.2              Take off to 1.2 m
  dronepilot goto 1 -1                Fly to x=1, z=-1
  dronepilot move --forward 0.5       Move 0.5 m up the map
  dronepilot mission square.json -f   Run a mission and follow progress
  dronepilot cancel                   Cancel everything and hover
"""
    )

    parser.add_argument(
        '--url',
        default='http://localhost:8080',
        help='Server URL (default: http://localhost:8080)'
    )
    parser.add_argument(
        '--timeout',
        type=float,
        default=60.0,
        help='Request timeout in seconds (default: 60)'
    )

    subparsers = parser.add_subparsers(dest='command', help='Command')

    # status
    subparsers.add_parser('status', help='Show drone state')

    # hover
    subparsers.add_parser('hover', help='Hover in place (cancels everything)')

    # takeoff
    p = subparsers.add_parser('takeoff', help='Take off')
    p.add_argument('altitude', type=float, nargs='?', default=None, help='Target altitude (m)')
    p.add_argument('--no-wait', action='store_true', help='Return once queued')

    # land
    p = subparsers.add_parser('land', help='Land')
    p.add_argument('--no-wait', action='store_true', help='Return once queued')

    # goto
    p = subparsers.add_parser('goto', help='Fly to a position')
    p.add_argument('x', type=float)
    p.add_argument('z', type=float)
    p.add_argument('--y', type=float, default=None, help='Target altitude (default: keep)')
    p.add_argument('--speed', type=float, default=None, help='Max speed (m/s)')
    p.add_argument('--no-wait', action='store_true', help='Return once queued')

    # move
    p = subparsers.add_parser('move', help='Move relative to current position')
    p.add_argument('--forward', type=float, default=0.0)
    p.add_argument('--right', type=float, default=0.0)
    p.add_argument('--up', type=float, default=0.0)
    p.add_argument('--frame', choices=['world', 'body'], default='world')
    p.add_argument('--no-wait', action='store_true', help='Return once queued')

    # cancel
    subparsers.add_parser('cancel', help='Cancel everything and hover')

    # pause
    subparsers.add_parser('pause', help='Pause current command or mission')

    # resume
    subparsers.add_parser('resume', help='Resume after pause')

    # mission
    p = subparsers.add_parser('mission', help='Run a mission file')
    p.add_argument('file', help='Mission JSON file (waypoint array or {waypoints, options})')
    p.add_argument('-f', '--follow', action='store_true', help='Follow progress until finished')

    return parser


def main(argv=None):
    """Main entry point for dronepilot CLI"""
    parser = build_parser()
    args = parser.parse_args(argv)

    # No command - show help
    if not args.command:
        parser.print_help()
        return 0

    client = DronePilotClient(args.url, timeout=args.timeout)

    if not client.is_server_running():
        print_error(f"Server is not running at {args.url}. Start it with 'dronepilot-server'.")
        return 1

    commands = {
        'status': cmd_status,
        'hover': cmd_hover,
        'takeoff': cmd_takeoff,
        'land': cmd_land,
        'goto': cmd_goto,
        'move': cmd_move,
        'cancel': cmd_cancel,
        'pause': cmd_pause,
        'resume': cmd_resume,
        'mission': cmd_mission,
    }

    try:
        commands[args.command](client, args)
    except FileNotFoundError as e:
        print_error(str(e))
        return 1
    except ServerError as e:
        print_error(str(e))
        return 1
    except ConnectionError as e:
        print_error(str(e))
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
